"""Report synthesizer - turns document summaries into one free-text 4-box report."""

import logging

from backend.app.config import Settings
from backend.app.llm.client import (
    CompletionClient,
    CompletionRequest,
    CompletionStream,
    RetryOptions,
    StreamingNotSupportedError,
)
from backend.app.models.common import ChatMessage
from backend.app.models.report import SECTION_HEADINGS, SECTION_KEYS

logger = logging.getLogger(__name__)

SYNTHESIS_RETRY = RetryOptions(max_retries=1, initial_delay=0.5, max_delay=2.0, backoff_factor=1.5)

SUMMARY_SEPARATOR = "\n\n---\n\n"
TRUNCATION_NOTICE = "\n\n[Additional content truncated due to length]"


def combine_summaries(summaries: list[str], max_chars: int) -> str:
    """Join document summaries, truncating past max_chars with a notice."""
    combined = SUMMARY_SEPARATOR.join(summaries)
    if len(combined) > max_chars:
        return combined[:max_chars] + TRUNCATION_NOTICE
    return combined


def build_report_prompt(combined: str, project_context: str | None) -> str:
    """Prompt naming the four section headings verbatim."""
    headings = "\n".join(
        f"{number}. {SECTION_HEADINGS[key]}" for number, key in enumerate(SECTION_KEYS, start=1)
    )
    context = f"Project Context: {project_context}\n\n" if project_context else ""
    return (
        "Generate a 4-box status report based on these document summaries:\n\n"
        f"{combined}\n\n"
        f"{context}"
        "Format the report with these four sections:\n"
        f"{headings}\n\n"
        "Use bullet points for each item. Focus on key information that would be most "
        "relevant for a status update."
    )


async def synthesize_report(
    summaries: list[str],
    project_context: str | None,
    client: CompletionClient,
    settings: Settings,
) -> str:
    """Ask the completion API for the full report text.

    Args:
        summaries: Per-document summary entries from the aggregator
        project_context: Optional free-text context supplied by the user
        client: Completion client
        settings: Model, caps and token budget

    Returns:
        Raw report text (may be empty)

    Raises:
        StreamingNotSupportedError: The client returned a stream
        CompletionError: The request failed after its retry budget
    """
    combined = combine_summaries(summaries, settings.max_summary_chars)
    prompt = build_report_prompt(combined, project_context)
    logger.info(
        f"[synthesizer] {len(summaries)} summaries, prompt {len(prompt)} chars"
    )

    response = await client.complete(
        CompletionRequest(
            model=settings.report_model,
            messages=[ChatMessage(role="system", content=prompt)],
            temperature=0.7,
            max_tokens=settings.report_max_tokens,
        ),
        purpose="report_synthesis",
        retry=SYNTHESIS_RETRY,
    )

    if isinstance(response, CompletionStream):
        raise StreamingNotSupportedError("Streaming response not supported for report synthesis")

    return response.text
