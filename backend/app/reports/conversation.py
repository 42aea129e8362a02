"""Report-builder conversation helpers: prompt building and applying replies to a report."""

import re

from backend.app.models.common import now_ms
from backend.app.models.report import SECTION_KEYS, ReportState, SectionKey
from backend.app.reports.sections import extract_sections

SECTION_TRIM_CHARS = 500

SECTION_LABELS: dict[SectionKey, str] = {
    "accomplishments": "accomplishments",
    "insights": "insights",
    "decisions": "decisions",
    "next_steps": "next steps",
}

# Checked in order; first section with a matching keyword wins
SECTION_KEYWORDS: tuple[tuple[SectionKey, tuple[str, ...]], ...] = (
    (
        "accomplishments",
        ("accomplishment", "success", "milestone", "completed", "achieved", "finished"),
    ),
    ("insights", ("insight", "learning", "discover", "aha", "found out", "realized")),
    (
        "decisions",
        (
            "decision",
            "risk",
            "resource",
            "roadblock",
            "help needed",
            "blocker",
            "problem",
            "issue",
        ),
    ),
    (
        "next_steps",
        ("next step", "upcoming", "todo", "to do", "to-do", "plan", "scheduled", "future"),
    ),
)

MODIFICATION_KEYWORDS = (
    "add",
    "update",
    "include",
    "put",
    "insert",
    "append",
    "note",
    "record",
    "capture",
    "log",
    "document",
)

SECTION_MENTIONS = (
    "accomplishment",
    "insight",
    "learning",
    "decision",
    "risk",
    "next step",
    "section",
)

_SECTION_WORD = r"(?:accomplishments?|insights?|decisions?|risks?|next\s+steps?)"

_USER_PREFIXES = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        rf"^add\s+to\s+{_SECTION_WORD}\s*[:.]\s*",
        rf"^update\s+{_SECTION_WORD}\s+with\s+",
        rf"^include\s+in\s+{_SECTION_WORD}\s*[:.]\s*",
        rf"^{_SECTION_WORD}\s*[:.]\s*",
        r"^i\s+want\s+to\s+add\s+",
        r"^i\s+need\s+to\s+add\s+",
        r"^please\s+add\s+",
        r"^can\s+you\s+add\s+",
        r"^add\s+",
    )
)

_USER_SUFFIXES = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        rf"\s+to\s+the\s+{_SECTION_WORD}(?:\s+section)?\.?$",
        rf"\s+to\s+{_SECTION_WORD}(?:\s+section)?\.?$",
        rf"\s+in\s+the\s+{_SECTION_WORD}(?:\s+section)?\.?$",
        rf"\s+in\s+{_SECTION_WORD}(?:\s+section)?\.?$",
        rf"\s+as\s+an?\s+{_SECTION_WORD}\.?$",
    )
)

_QUOTED = re.compile(r"'([^']*)'|\"([^\"]*)\"")
_ADDED = re.compile(r"Added:?\s*([^\"\n]+)", re.IGNORECASE)


def identify_section(message: str) -> SectionKey | None:
    """Section a message refers to, by keyword."""
    lower = message.lower()
    for key, keywords in SECTION_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return key
    return None


def is_add_request(message: str) -> bool:
    """True for "add X to <section>" style messages."""
    lower = message.lower()
    has_modification = any(keyword in lower for keyword in MODIFICATION_KEYWORDS)
    has_section = any(keyword in lower for keyword in SECTION_MENTIONS)
    return has_modification and has_section


def extract_content_from_user_message(message: str) -> str:
    """Strip "add ... to <section>" framing from a user message."""
    content = message.strip()
    for prefix in _USER_PREFIXES:
        content = prefix.sub("", content, count=1)
    for suffix in _USER_SUFFIXES:
        content = suffix.sub("", content, count=1)
    return content.strip()


def extract_content_from_ai_response(response: str) -> str:
    """Content confirmed by the assistant's "✅ Added: '...'" line, or ""."""
    if "✅" not in response:
        return ""
    after = response.split("✅", 1)[1]
    if not after.strip():
        return ""

    quoted = _QUOTED.search(after)
    if quoted and (quoted.group(1) or quoted.group(2)):
        return quoted.group(1) or quoted.group(2)

    added = _ADDED.search(after)
    if added:
        return added.group(1).strip()

    first_line = after.split("\n", 1)[0].strip()
    first_line = re.sub(r"^(Added|Updated|Included)(\s+|:)", "", first_line, flags=re.IGNORECASE)
    return re.sub(
        rf"\s+to\s+(?:the\s+)?{_SECTION_WORD}\s+section\.?$", "", first_line, flags=re.IGNORECASE
    )


def choose_best_content(user_content: str, ai_content: str) -> str:
    """Prefer the assistant's wording unless it is too short, too long or mentions "section"."""
    if (
        len(ai_content) > 5
        and "section" not in ai_content.lower()
        and len(ai_content) < len(user_content) * 2
    ):
        return ai_content
    return user_content


def format_as_bullet(content: str) -> str:
    if content.startswith("* ") or content.startswith("- "):
        return content
    return f"* {content}"


def append_to_section(existing: str, addition: str) -> str:
    return f"{existing}\n{addition}" if existing else addition


def trim_section(content: str, max_chars: int = SECTION_TRIM_CHARS) -> str:
    """Shorten section text before it is embedded in a prompt.

    Up to three bullets are kept, each truncated to its share of max_chars.
    With more bullets, the first two and the last are kept around a marker.
    """
    if not content or len(content) <= max_chars:
        return content

    bullets = [
        line
        for line in re.split(r"\n+", content)
        if line.strip().startswith("*") or line.strip().startswith("-")
    ]
    if not bullets:
        return content[: max_chars - 3] + "..."
    if len(bullets) <= 3:
        share = max_chars // len(bullets)
        return "\n".join(b if len(b) <= share else b[: share - 3] + "..." for b in bullets)
    return (
        "\n".join(bullets[:2])
        + "\n* [... additional items truncated for performance ...]\n"
        + bullets[-1]
    )


def build_system_prompt(report: ReportState) -> str:
    """System prompt for the report-builder assistant, embedding the current report."""
    sections = {key: trim_section(report.sections.get(key)) for key in SECTION_KEYS}
    return f"""You are the 4-Box Report Builder, an assistant designed to help professionals create concise, informative status reports.

Your task is to analyze the user's uploaded documents and conversation to generate content for a 4-box report with these sections:

1. Accomplishments Since Last Update: List completed tasks, milestones reached, and successes.
2. Insights / Learnings: Highlight important discoveries, lessons learned, and "aha moments".
3. Decisions / Risks / Resources Required: Note decisions needed, potential issues, and resource requirements.
4. Next Steps / Upcoming Tasks: Outline immediate future work and upcoming deliverables.

IMPORTANT FORMAT INSTRUCTIONS:
When generating a complete report:
- ALWAYS use numbered sections exactly as shown above (1., 2., 3., 4.)
- Separate each section with two newlines
- Format the content of each section as bullet points, starting each line with * or -

When the user asks to add specific content to a section:
1. Only return the NEW content you're adding, NOT the entire section's existing content
2. Start your response with "✅ Added:" followed by the extracted content in quotes
3. Example good response: "✅ Added: 'Schedule meeting with design team'"
4. DO NOT include the word "section" in your extracted content

The current report state is:
Title: {report.title or 'Untitled Report'}
Date: {report.date or 'No date specified'}

1. Accomplishments:
{sections['accomplishments'] or 'None specified yet'}

2. Insights:
{sections['insights'] or 'None specified yet'}

3. Decisions/Risks:
{sections['decisions'] or 'None specified yet'}

4. Next Steps:
{sections['next_steps'] or 'None specified yet'}

If the user asks to generate the full report, update all sections using the numbered format."""


def build_add_instructions(target: SectionKey, message: str) -> str:
    """Extra system instructions for an add-to-section request."""
    label = SECTION_LABELS[target]
    return f"""

This appears to be a request to UPDATE the "{label}" section.
IMPORTANT INSTRUCTIONS:
1. This is an ADD request - you must preserve all existing content in the {label} section
2. Extract exactly what the user wants to add from their message: "{message}"
3. Begin your response with "✅ Added:" followed by the extracted content in quotes
4. DO NOT include the word "section" in your extracted content
5. Do not include any explanation or commentary beyond confirming what was added"""


def add_to_report(report: ReportState, target: SectionKey, content: str) -> ReportState:
    """Copy of the report with one bullet appended to a section."""
    updated = report.model_copy(deep=True)
    bullet = format_as_bullet(content)
    if len(bullet) <= 2:
        return updated
    setattr(updated.sections, target, append_to_section(updated.sections.get(target), bullet))
    updated.metadata.last_updated = now_ms()
    return updated


def apply_reply(
    reply: str,
    report: ReportState,
    message: str,
    *,
    add_request: bool,
    target: SectionKey | None,
) -> ReportState:
    """Fold an assistant reply into the report.

    Add requests append one bullet to the target section. Otherwise the reply
    is parsed as a (partial) report: recognized sections overwrite, the rest
    keep their content, and the reply is kept as ``metadata.full_report``.
    """
    if add_request and target is not None:
        content = choose_best_content(
            extract_content_from_user_message(message), extract_content_from_ai_response(reply)
        )
        return add_to_report(report, target, content)

    updated = report.model_copy(deep=True)
    extraction = extract_sections(reply, allow_empty=True)
    for key in SECTION_KEYS:
        value = extraction.sections.get(key)
        if value:
            setattr(updated.sections, key, value)
    updated.metadata.full_report = reply
    updated.metadata.last_updated = now_ms()
    return updated
