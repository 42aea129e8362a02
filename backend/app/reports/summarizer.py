"""Chunk summarizer - one completion request per document chunk."""

import logging

from backend.app.config import Settings
from backend.app.llm.client import (
    CompletionClient,
    CompletionRequest,
    CompletionStream,
    RetryOptions,
)
from backend.app.models.common import ChatMessage
from backend.app.utils.metrics import chunk_summary_failures_total

logger = logging.getLogger(__name__)

CHUNK_SUMMARY_RETRY = RetryOptions(
    max_retries=1, initial_delay=0.2, max_delay=1.0, backoff_factor=1.5
)

STREAMING_PLACEHOLDER = "[Error: Streaming response not supported for chunk summarization]"


def build_chunk_prompt(chunk: str, doc_name: str, index: int, total: int) -> str:
    """Instructional prompt for summarizing one chunk (index is 0-based)."""
    return (
        f'Summarize the following content from document "{doc_name}" '
        f"(chunk {index + 1} of {total}).\n"
        "Focus on extracting key information that would be relevant for a status report, "
        "including:\n"
        "- Accomplishments or completed tasks\n"
        "- Insights or lessons learned\n"
        "- Decisions needed or risks identified\n"
        "- Next steps or future tasks\n\n"
        "Content to summarize:\n"
        f"{chunk}\n\n"
        "Provide a concise summary that captures the essential information."
    )


async def summarize_chunk(
    client: CompletionClient,
    chunk: str,
    doc_name: str,
    index: int,
    total: int,
    settings: Settings,
) -> str:
    """Summarize one chunk, never raising.

    Args:
        client: Completion client
        chunk: Chunk text
        doc_name: Name of the source document (for the prompt)
        index: 0-based chunk index
        total: Number of chunks in the document
        settings: Model and token budget

    Returns:
        Summary text, "" for an empty chunk, or a bracketed placeholder
        containing "Error" when summarization failed
    """
    if not chunk.strip():
        return ""

    request = CompletionRequest(
        model=settings.summary_model,
        messages=[ChatMessage(role="user", content=build_chunk_prompt(chunk, doc_name, index, total))],
        temperature=0.5,
        max_tokens=settings.chunk_summary_max_tokens,
    )

    try:
        response = await client.complete(
            request, purpose="chunk_summary", retry=CHUNK_SUMMARY_RETRY
        )
    except Exception as e:
        logger.error(
            f"[summarizer] doc={doc_name!r} chunk {index + 1}/{total} failed: {e}"
        )
        chunk_summary_failures_total.inc()
        return f"[Error summarizing chunk {index + 1} of {doc_name}: {str(e) or type(e).__name__}]"

    if isinstance(response, CompletionStream):
        logger.warning(f"[summarizer] doc={doc_name!r} chunk {index + 1}/{total} got a stream")
        chunk_summary_failures_total.inc()
        return STREAMING_PLACEHOLDER

    return response.text
