"""Section extractor - parses free-text report output into the four report sections.

Extraction is an ordered list of named rules. Each rule only fills sections
that earlier rules left empty:

1. ``numbered_heading``      "1. Accomplishments:" / "II) Insights" / "Next Steps:" lines
2. ``bold_heading``          "**1. Accomplishments**:" / "**Insights:**" lines,
                             tried only when rule 1 recognized no heading and the
                             text mentions "Accomplishments"
3. ``bullet_redistribution`` no heading at all: bullets dealt round-robin into sections
4. ``default_placeholder``   "* No ... identified in documents"

Rules 3 and 4 are skipped with ``allow_empty=True`` so incremental chat updates
leave unmatched sections untouched.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from backend.app.models.report import SECTION_KEYS, ReportSections, SectionKey

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Status Report"

DEFAULT_SECTION_TEXT: dict[SectionKey, str] = {
    "accomplishments": "* No accomplishments identified in documents",
    "insights": "* No insights identified in documents",
    "decisions": "* No decisions or risks identified in documents",
    "next_steps": "* No next steps identified in documents",
}

# Heading number (arabic or roman) and name synonyms per section
_SECTION_NUMBERS: dict[SectionKey, str] = {
    "accomplishments": r"(?:1|I)",
    "insights": r"(?:2|II)",
    "decisions": r"(?:3|III)",
    "next_steps": r"(?:4|IV)",
}

_SECTION_NAMES: dict[SectionKey, str] = {
    "accomplishments": r"(?:accomplishments?)",
    "insights": r"(?:insights?|learnings?)",
    "decisions": r"(?:decisions?|risks?|resources?(?:\s+required)?)",
    "next_steps": r"(?:next\s+steps?|upcoming)",
}

_FLAGS = re.MULTILINE | re.IGNORECASE


def _numbered_heading_pattern(key: SectionKey) -> re.Pattern[str]:
    number = _SECTION_NUMBERS[key]
    name = _SECTION_NAMES[key]
    return re.compile(
        rf"^[ \t]*(?:#{{1,6}}[ \t]*)?{number}[.)][ \t]*{name}\b(?P<rest>[^\n]*)$"
        rf"|^[ \t]*#{{1,6}}[ \t]+{name}\b(?P<hrest>[^\n]*)$"
        rf"|^[ \t]*{name}\b[^\n:]*:[ \t]*$",
        _FLAGS,
    )


def _bold_heading_pattern(key: SectionKey) -> re.Pattern[str]:
    number = _SECTION_NUMBERS[key]
    name = _SECTION_NAMES[key]
    return re.compile(
        rf"^[ \t]*(?:#{{1,6}}[ \t]*)?\*\*[ \t]*(?:{number}[.)][ \t]*)?{name}\b[^\n*]*\*\*"
        rf"[ \t]*(?:[:\-–][ \t]*)?(?P<inline>[^\n]*)$",
        _FLAGS,
    )


_BULLET_LINE = re.compile(r"^[ \t]*[*-][ \t]+\S.*$", re.MULTILINE)
_BOLD_ONLY_LINE = re.compile(r"^\*\*[^\n]*\*\*[ \t]*:?[ \t]*$")
_MARKDOWN_HEADER_LINE = re.compile(r"^#+\s+")
_DASH_SEPARATOR = re.compile(r"^[ \t]*[-–][ \t]+")
_TITLE_LINE = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*)?(?:Title|Project|Report)(?:\*\*)?[ \t]*:(?:\*\*)?"
    r"[ \t]*(?P<title>[^\n]+)$",
    _FLAGS,
)


@dataclass(frozen=True)
class Extraction:
    """Result of running the extraction rules over one response."""

    title: str
    sections: ReportSections
    section_sources: dict[SectionKey, str]
    full_report: str
    headings_found: bool = False


@dataclass
class _Progress:
    found: dict[SectionKey, str] = field(default_factory=dict)
    sources: dict[SectionKey, str] = field(default_factory=dict)
    headings_found: bool = False


@dataclass(frozen=True)
class ExtractionRule:
    """One named step of the extractor.

    ``applies`` decides from the text, the progress so far and ``allow_empty``
    whether the rule runs. ``run`` returns section bodies keyed by section;
    for heading rules a recognized heading with an empty body maps to "".
    """

    name: str
    applies: Callable[[str, _Progress, bool], bool]
    run: Callable[[str], dict[SectionKey, str]]
    is_heading_rule: bool = False


def _clean_body(body: str) -> str:
    """Drop leading blank, bold-only and markdown header lines, then strip."""
    lines = body.split("\n")
    while lines and (
        not lines[0].strip()
        or _BOLD_ONLY_LINE.match(lines[0].strip())
        or _MARKDOWN_HEADER_LINE.match(lines[0].strip())
    ):
        lines.pop(0)
    return "\n".join(lines).strip()


def _inline_text(match: re.Match[str]) -> str:
    """Text on the heading line after the name and its ":" or "-" separator."""
    groups = match.groupdict()
    inline = groups.get("inline")
    if inline is None:
        rest = groups.get("rest") or groups.get("hrest") or ""
        if ":" in rest:
            inline = rest.split(":", 1)[1]
        else:
            dash = _DASH_SEPARATOR.match(rest)
            inline = rest[dash.end() :] if dash else ""
    return inline.strip().strip("*").strip()


def _extract_by_headings(
    text: str, patterns: dict[SectionKey, re.Pattern[str]]
) -> dict[SectionKey, str]:
    """Split text at recognized headings; body runs to the next heading or end."""
    headings: list[tuple[int, int, SectionKey, str]] = []
    for key, pattern in patterns.items():
        for match in pattern.finditer(text):
            headings.append((match.start(), match.end(), key, _inline_text(match)))
    headings.sort()

    bodies: dict[SectionKey, str] = {}
    for i, (_start, end, key, inline) in enumerate(headings):
        if key in bodies:
            continue
        stop = headings[i + 1][0] if i + 1 < len(headings) else len(text)
        body = text[end:stop]
        if inline:
            body = f"{inline}{body}"
        bodies[key] = _clean_body(body)
    return bodies


_NUMBERED_PATTERNS = {key: _numbered_heading_pattern(key) for key in SECTION_KEYS}
_BOLD_PATTERNS = {key: _bold_heading_pattern(key) for key in SECTION_KEYS}


def find_numbered_sections(text: str) -> dict[SectionKey, str]:
    """Rule 1: numbered, markdown-header or "Name:" headings."""
    return _extract_by_headings(text, _NUMBERED_PATTERNS)


def find_bold_sections(text: str) -> dict[SectionKey, str]:
    """Rule 2: markdown-bold headings such as "**1. Accomplishments**:"."""
    return _extract_by_headings(text, _BOLD_PATTERNS)


def redistribute_bullets(text: str) -> dict[SectionKey, str]:
    """Rule 3: deal bullet lines round-robin into the four sections, order kept."""
    bullets = [line.strip() for line in _BULLET_LINE.findall(text)]
    if not bullets:
        return {}
    result: dict[SectionKey, str] = {}
    for offset, key in enumerate(SECTION_KEYS):
        share = bullets[offset :: len(SECTION_KEYS)]
        if share:
            result[key] = "\n".join(share)
    return result


def default_sections(_text: str) -> dict[SectionKey, str]:
    """Rule 4: placeholder text for every section."""
    return dict(DEFAULT_SECTION_TEXT)


EXTRACTION_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="numbered_heading",
        applies=lambda _text, _progress, _allow_empty: True,
        run=find_numbered_sections,
        is_heading_rule=True,
    ),
    ExtractionRule(
        name="bold_heading",
        applies=lambda text, progress, _allow_empty: (
            not progress.headings_found and "Accomplishments" in text
        ),
        run=find_bold_sections,
        is_heading_rule=True,
    ),
    ExtractionRule(
        name="bullet_redistribution",
        applies=lambda _text, progress, allow_empty: (
            not allow_empty and not progress.headings_found
        ),
        run=redistribute_bullets,
    ),
    ExtractionRule(
        name="default_placeholder",
        applies=lambda _text, _progress, allow_empty: not allow_empty,
        run=default_sections,
    ),
)


def extract_title(text: str) -> str | None:
    """Title from a "Title:", "Project:" or "Report:" label line."""
    match = _TITLE_LINE.search(text)
    if not match:
        return None
    title = match.group("title").strip().strip("*").strip()
    return title or None


def extract_sections(raw_text: str, allow_empty: bool = False) -> Extraction:
    """Parse a free-text report into title and four sections.

    Pure and deterministic.

    Args:
        raw_text: Completion output
        allow_empty: Leave unmatched sections empty instead of filling them
            from bullets or placeholders (incremental chat updates)

    Returns:
        Extraction with the title, the sections, which rule filled each
        section, and the raw text as ``full_report``
    """
    progress = _Progress()

    for rule in EXTRACTION_RULES:
        if not rule.applies(raw_text, progress, allow_empty):
            continue
        produced = rule.run(raw_text)
        if rule.is_heading_rule and produced:
            progress.headings_found = True
        for key in SECTION_KEYS:
            value = produced.get(key, "")
            if value and not progress.found.get(key):
                progress.found[key] = value
                progress.sources[key] = rule.name

    logger.debug(f"[extractor] section sources: {progress.sources}")

    return Extraction(
        title=extract_title(raw_text) or DEFAULT_TITLE,
        sections=ReportSections(**{key: progress.found.get(key, "") for key in SECTION_KEYS}),
        section_sources=dict(progress.sources),
        full_report=raw_text,
        headings_found=progress.headings_found,
    )


MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _ordinal_suffix(day: int) -> str:
    if 3 < day < 21:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_report_date(value: date | None = None) -> str:
    """Report date such as "Jun 3rd 2025" (defaults to today)."""
    value = value or date.today()
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.day}{_ordinal_suffix(value.day)} {value.year}"
