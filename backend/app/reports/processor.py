"""Background report job: submit, run the pipeline, poll status."""

import logging
import uuid

from backend.app.config import Settings
from backend.app.llm.client import CompletionClient, CompletionError, StreamingNotSupportedError
from backend.app.models.common import now_ms
from backend.app.models.report import (
    ProcessingStatus,
    ReportMetadata,
    ReportProcessingState,
    ReportSections,
    ReportState,
    ReportStatusResponse,
    UploadedDocument,
)
from backend.app.reports.aggregator import process_documents
from backend.app.reports.sections import (
    DEFAULT_SECTION_TEXT,
    DEFAULT_TITLE,
    extract_sections,
    format_report_date,
)
from backend.app.reports.store import ReportStore
from backend.app.reports.synthesizer import synthesize_report
from backend.app.utils.metrics import report_jobs_total

logger = logging.getLogger(__name__)

NO_DOCUMENT_CONTENT_ERROR = "No document content could be summarized"


def _report(
    sections: ReportSections,
    *,
    title: str = DEFAULT_TITLE,
    related_documents: list[str] | None = None,
    full_report: str | None = None,
    error: str | None = None,
) -> ReportState:
    return ReportState(
        title=title,
        date=format_report_date(),
        sections=sections,
        metadata=ReportMetadata(
            related_documents=related_documents or [],
            full_report=full_report,
            error=error,
        ),
    )


def default_report(related_documents: list[str], error: str | None = None) -> ReportState:
    """Report made of the four default placeholders."""
    return _report(
        ReportSections(**DEFAULT_SECTION_TEXT),
        related_documents=related_documents,
        error=error,
    )


def streaming_placeholder_report(related_documents: list[str]) -> ReportState:
    """Report explaining that the completion API streamed instead of answering."""
    return _report(
        ReportSections(
            accomplishments="* Error: Received streaming response",
            insights="* Please try again with fewer documents",
        ),
        related_documents=related_documents,
        error="Streaming response not supported for report generation",
    )


def empty_output_report(related_documents: list[str]) -> ReportState:
    """Report used when the completion API returned no text."""
    return _report(
        ReportSections(
            accomplishments="* No content was generated from your documents",
            insights="* Try uploading different documents or adding specific details via chat",
        ),
        related_documents=related_documents,
        error="Empty response from completion API",
    )


def synthesis_failed_report(related_documents: list[str], error: str) -> ReportState:
    """Report used when the synthesis request failed; the chat can still fill it in."""
    return _report(
        ReportSections(
            accomplishments="* Error generating report from document summaries",
            insights="* You can still add content using the chat interface",
            decisions="* Try asking specific questions to build your report section by section",
            next_steps="* Use 'add X to next steps' to build this section manually",
        ),
        title="Error Report",
        related_documents=related_documents,
        error=error,
    )


async def generate_report(
    documents: list[UploadedDocument],
    project_context: str | None,
    client: CompletionClient,
    settings: Settings,
) -> ReportState:
    """Run the full pipeline: summarize documents, synthesize, extract sections.

    Completion failures are folded into placeholder reports. Anything else
    propagates to the caller.
    """
    related = [doc.id for doc in documents]

    summaries = await process_documents(documents, client, settings)
    if not summaries:
        logger.warning(f"[report-processor] no summaries from {len(documents)} document(s)")
        return default_report(related, error=NO_DOCUMENT_CONTENT_ERROR)

    try:
        text = await synthesize_report(summaries, project_context, client, settings)
    except StreamingNotSupportedError:
        logger.warning("[report-processor] synthesis returned a stream")
        return streaming_placeholder_report(related)
    except CompletionError as e:
        logger.error(f"[report-processor] synthesis failed: {e}")
        return synthesis_failed_report(related, str(e))

    if not text.strip():
        return empty_output_report(related)

    extraction = extract_sections(text)
    logger.info(f"[report-processor] sections filled by {extraction.section_sources}")
    return _report(
        extraction.sections,
        title=extraction.title,
        related_documents=related,
        full_report=extraction.full_report,
    )


def submit_report(
    store: ReportStore,
    documents: list[UploadedDocument],
    project_context: str | None = None,
) -> str:
    """Record a new pending job and return its report id."""
    report_id = str(uuid.uuid4())
    store.set(
        ReportProcessingState(
            report_id=report_id,
            documents=documents,
            project_context=project_context,
        )
    )
    logger.info(f"[report-processor] report_id={report_id} submitted ({len(documents)} docs)")
    return report_id


def _update(store: ReportStore, state: ReportProcessingState, **changes: object) -> ReportProcessingState:
    updated = state.model_copy(update={**changes, "updated_at": now_ms()})
    store.set(updated)
    return updated


async def run_report_job(
    report_id: str,
    store: ReportStore,
    client: CompletionClient,
    settings: Settings,
) -> None:
    """Process a submitted job to completion.

    Runs after the HTTP response has been sent. Every failure ends up in the
    store as ``status: error``; nothing is raised.
    """
    state = store.get(report_id)
    if state is None:
        logger.error(f"[report-processor] report_id={report_id} not found for processing")
        return

    try:
        state = _update(store, state, status=ProcessingStatus.processing)
        logger.info(f"[report-processor] report_id={report_id} processing started")

        result = await generate_report(state.documents, state.project_context, client, settings)

        _update(store, state, status=ProcessingStatus.completed, result=result)
        report_jobs_total.labels(status=ProcessingStatus.completed.value).inc()
        logger.info(f"[report-processor] report_id={report_id} completed")
    except Exception as e:
        logger.exception(f"[report-processor] report_id={report_id} failed: {e}")
        report_jobs_total.labels(status=ProcessingStatus.error.value).inc()
        current = store.get(report_id)
        if current is None or current.status in (
            ProcessingStatus.completed,
            ProcessingStatus.error,
        ):
            return
        _update(store, current, status=ProcessingStatus.error, error=str(e) or type(e).__name__)


def get_report_status(store: ReportStore, report_id: str) -> ReportStatusResponse:
    """Polling view of a job; unknown ids report an error status."""
    state = store.get(report_id)
    if state is None:
        return ReportStatusResponse(
            is_complete=False, status=ProcessingStatus.error, error="Report not found"
        )
    return ReportStatusResponse(
        is_complete=state.status == ProcessingStatus.completed,
        status=state.status,
        report_state=state.result,
        error=state.error,
    )
