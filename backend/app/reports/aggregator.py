"""Document aggregator - sequential chunk-and-summarize over uploaded documents."""

import logging

from backend.app.config import Settings
from backend.app.llm.client import CompletionClient
from backend.app.models.report import UploadedDocument
from backend.app.reports.chunker import chunk_text
from backend.app.reports.summarizer import summarize_chunk

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[Document truncated due to length]"


async def summarize_document(
    document: UploadedDocument,
    client: CompletionClient,
    settings: Settings,
) -> str | None:
    """Summarize one document, or None when it has no text.

    Returns:
        "Document: <name>" followed by the non-empty chunk summaries,
        separated by blank lines
    """
    text = document.text_content or ""
    if not text.strip():
        logger.info(f"[aggregator] skipping document {document.name!r} - no content")
        return None

    if len(text) > settings.max_document_chars:
        logger.warning(
            f"[aggregator] document {document.name!r} truncated from {len(text)} "
            f"to {settings.max_document_chars} chars"
        )
        text = text[: settings.max_document_chars] + TRUNCATION_MARKER

    chunks = chunk_text(text, settings.chunk_size_chars)
    logger.info(f"[aggregator] document {document.name!r} split into {len(chunks)} chunk(s)")

    summaries: list[str] = []
    for index, chunk in enumerate(chunks):
        summary = await summarize_chunk(
            client, chunk, document.name, index, len(chunks), settings
        )
        if summary:
            summaries.append(summary)

    return f"Document: {document.name}\n\n" + "\n\n".join(summaries)


async def process_documents(
    documents: list[UploadedDocument],
    client: CompletionClient,
    settings: Settings,
) -> list[str]:
    """Summarize documents one at a time, in order.

    Documents without text are skipped. A document that fails unexpectedly is
    logged and skipped; chunk failures are already folded into placeholder
    summaries by the summarizer.

    Returns:
        One summary entry per processed document
    """
    results: list[str] = []
    for document in documents:
        try:
            summary = await summarize_document(document, client, settings)
        except Exception as e:
            logger.exception(f"[aggregator] error processing document {document.name!r}: {e}")
            continue
        if summary is not None:
            results.append(summary)
    return results
