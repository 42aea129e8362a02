"""Streamed report generation - partial 4-box reports while the completion arrives."""

import logging
from collections.abc import AsyncIterator

from backend.app.config import Settings
from backend.app.llm.client import (
    CompletionClient,
    CompletionError,
    CompletionRequest,
    CompletionStream,
    RetryOptions,
)
from backend.app.models.common import ChatMessage
from backend.app.models.report import (
    SECTION_HEADINGS,
    SECTION_KEYS,
    ProcessingStatus,
    ReportMetadata,
    ReportSections,
    ReportState,
    ReportStatusResponse,
    UploadedDocument,
)
from backend.app.reports.processor import empty_output_report
from backend.app.reports.sections import extract_sections, format_report_date
from backend.app.reports.synthesizer import combine_summaries

logger = logging.getLogger(__name__)

NO_TEXT_ERROR = "Document contains no text content to process"

STREAM_RETRY = RetryOptions(max_retries=1, initial_delay=0.5, max_delay=2.0)


def build_stream_messages(document_text: str, project_context: str | None) -> list[ChatMessage]:
    """System prompt with the numbered headings, user prompt with the documents."""
    headings = "\n".join(
        f"{number}. {SECTION_HEADINGS[key]}" for number, key in enumerate(SECTION_KEYS, start=1)
    )
    context = f"Project Context: {project_context}\n\n" if project_context else ""
    system = (
        "You are the 4-Box Report Builder, an assistant that helps professionals write "
        "concise, informative status reports.\n\n"
        "Analyze the provided documents and write a 4-box report with exactly these "
        f"section headings, numbers included:\n{headings}\n\n"
        'Every item goes on its own bullet line starting with "*" or "-". Separate the '
        "sections with a blank line. Do not add other headings, an introduction or a "
        "conclusion."
    )
    user = (
        f"Here are the documents to analyze:\n\n{document_text}\n\n{context}"
        "Based on these documents, generate content for each section of the 4-box report."
    )
    return [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=user),
    ]


def report_from_text(text: str, related_documents: list[str], *, final: bool) -> ReportState:
    """Report built from the text received so far.

    Partial text leaves unmatched sections empty; the final text gets the
    full extraction with bullet redistribution and placeholders.
    """
    extraction = extract_sections(text, allow_empty=not final)
    return ReportState(
        title=extraction.title,
        date=format_report_date(),
        sections=extraction.sections,
        metadata=ReportMetadata(
            related_documents=related_documents,
            full_report=text if final else None,
        ),
    )


async def _whole_text(text: str) -> AsyncIterator[str]:
    if text:
        yield text


async def stream_report(
    documents: list[UploadedDocument],
    project_context: str | None,
    client: CompletionClient,
    settings: Settings,
) -> AsyncIterator[ReportStatusResponse]:
    """Generate a report straight from document text, yielding progress frames.

    A ``processing`` frame is yielded whenever the received text changes the
    extracted sections. The last frame is ``completed`` with the final report,
    or ``error`` with the partial report when the completion failed or the
    stream went idle.

    Args:
        documents: Uploaded documents; those without text are skipped
        project_context: Optional free-text context supplied by the user
        client: Completion client
        settings: Model, caps and token budget
    """
    readable = [doc for doc in documents if (doc.text_content or "").strip()]
    if not readable:
        logger.warning(f"[report-stream] none of {len(documents)} document(s) has text")
        yield ReportStatusResponse(
            is_complete=True, status=ProcessingStatus.error, error=NO_TEXT_ERROR
        )
        return

    related = [doc.id for doc in readable]
    document_text = combine_summaries(
        [f"Document: {doc.name}\n{(doc.text_content or '').strip()}" for doc in readable],
        settings.max_document_chars,
    )
    request = CompletionRequest(
        model=settings.report_model,
        messages=build_stream_messages(document_text, project_context),
        temperature=0.2,
        max_tokens=settings.report_max_tokens,
        stream=True,
    )
    logger.info(
        f"[report-stream] {len(readable)} document(s), {len(document_text)} chars of text"
    )

    text = ""
    last_sections: ReportSections | None = None
    try:
        result = await client.complete(request, purpose="report_stream", retry=STREAM_RETRY)
        if isinstance(result, CompletionStream):
            deltas = result.iter_deltas()
        else:
            deltas = _whole_text(result.text)

        async for delta in deltas:
            text += delta
            partial = report_from_text(text, related, final=False)
            if partial.sections == last_sections:
                continue
            last_sections = partial.sections
            yield ReportStatusResponse(
                is_complete=False, status=ProcessingStatus.processing, report_state=partial
            )
    except CompletionError as e:
        logger.error(f"[report-stream] completion failed after {len(text)} chars: {e}")
        partial = None
        if text:
            partial = report_from_text(text, related, final=False)
            partial.metadata.error = str(e)
        yield ReportStatusResponse(
            is_complete=True,
            status=ProcessingStatus.error,
            report_state=partial,
            error=str(e),
        )
        return

    if text.strip():
        report = report_from_text(text, related, final=True)
    else:
        report = empty_output_report(related)
    logger.info(f"[report-stream] completed with {len(text)} chars")
    yield ReportStatusResponse(
        is_complete=True, status=ProcessingStatus.completed, report_state=report
    )
