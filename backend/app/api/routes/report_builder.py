"""Report builder endpoints - chat, generation (background or streamed), polling, export."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import Field

from backend.app.config import Settings, get_settings
from backend.app.llm.client import (
    CompletionClient,
    CompletionError,
    CompletionRequest,
    CompletionTimeoutError,
    RetryOptions,
    complete_text,
    get_completion_client,
)
from backend.app.models.chat import ReportChatRequest, ReportChatResponse
from backend.app.models.common import CamelModel, ChatMessage
from backend.app.models.report import (
    ProcessingStatus,
    ReportState,
    ReportStatusResponse,
    UploadedDocument,
)
from backend.app.reports.conversation import (
    SECTION_LABELS,
    add_to_report,
    apply_reply,
    build_add_instructions,
    build_system_prompt,
    extract_content_from_user_message,
    identify_section,
    is_add_request,
)
from backend.app.reports.export import SUPPORTED_FORMATS, export_filename, render_markdown
from backend.app.reports.processor import get_report_status, run_report_job, submit_report
from backend.app.reports.store import ReportStore, get_report_store
from backend.app.reports.streaming import stream_report

router = APIRouter(prefix="/api/report-builder", tags=["report-builder"])
logger = logging.getLogger(__name__)

REPORT_CHAT_RETRY = RetryOptions(max_retries=1, initial_delay=0.2, max_delay=1.0, backoff_factor=1.5)

NOT_CONFIGURED_REPLY = (
    "I'm sorry, I can't process your request because the API connection is not configured. "
    "Please contact the administrator to set up the API key."
)
ERROR_REPLY = (
    "❌ **Error:** I apologize, but I encountered an error while processing your request. "
    "Please try again later."
)
TIMEOUT_REPLY = (
    "⏱️ **Request timed out:** I'm sorry, but your request took too long to process. "
    "Please try a shorter message or break your request into smaller parts."
)
FAILURE_REPLY = "❌ **Error:** I'm sorry, I couldn't process your message. Please try again."


class GenerateReportRequest(CamelModel):
    """Request body for POST /api/report-builder/generate-report."""

    documents: list[UploadedDocument] = Field(default_factory=list)
    project_context: str | None = None


class GenerateReportResponse(CamelModel):
    """Response for POST /api/report-builder/generate-report."""

    report_id: str
    status: ProcessingStatus
    message: str = "Report generation started"


class ExportReportRequest(CamelModel):
    """Request body for POST /api/report-builder/export."""

    report_state: ReportState | None = None
    format: str | None = None


def _json(model: CamelModel, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        content=model.model_dump(by_alias=True, mode="json", exclude_none=True),
        status_code=status_code,
    )


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


@router.post("/chat", response_model=None)
async def report_chat(
    request: ReportChatRequest,
    client: Annotated[CompletionClient | None, Depends(get_completion_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Converse about the report and fold the reply into it.

    Returns:
        200 with ``reply`` and ``updatedReport``, or ``reply`` and ``error``
        when the completion API failed
        400 if ``message`` is missing
        500 if no completion API is configured or on unexpected failure
    """
    message = (request.message or "").strip()
    if not message:
        return _error("Missing message parameter", status.HTTP_400_BAD_REQUEST)

    if client is None:
        logger.warning("[POST /api/report-builder/chat] completion client not configured")
        return _json(
            ReportChatResponse(reply=NOT_CONFIGURED_REPLY, error="Completion API key is missing"),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    report = request.report_state
    try:
        add_request = is_add_request(message)
        target = identify_section(message)
        # An empty report always gets a full report back
        force_full = report.sections.is_empty()
        logger.info(
            f"[POST /api/report-builder/chat] add_request={add_request} target={target} "
            f"force_full={force_full}"
        )

        system_prompt = build_system_prompt(report)
        if add_request and target is not None and not force_full:
            system_prompt += build_add_instructions(target, message)

        completion = CompletionRequest(
            model=settings.report_chat_model,
            messages=[
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=message),
            ],
            temperature=0.7,
            max_tokens=settings.report_chat_max_tokens,
        )

        try:
            reply = await asyncio.wait_for(
                complete_text(client, completion, purpose="report_chat", retry=REPORT_CHAT_RETRY),
                timeout=settings.chat_timeout_seconds,
            )
        except (TimeoutError, CompletionTimeoutError) as e:
            logger.warning(f"[POST /api/report-builder/chat] completion timed out: {e}")
            if add_request and target is not None:
                content = extract_content_from_user_message(message)
                if content:
                    return _json(
                        ReportChatResponse(
                            reply=(
                                f"{TIMEOUT_REPLY}\n\n✅ I've added your content directly to the "
                                f'{SECTION_LABELS[target]} section: "{content}"'
                            ),
                            updated_report=add_to_report(report, target, content),
                        )
                    )
            return _json(ReportChatResponse(reply=TIMEOUT_REPLY, error="Request timed out"))
        except CompletionError as e:
            logger.error(f"[POST /api/report-builder/chat] completion failed: {e}")
            return _json(ReportChatResponse(reply=ERROR_REPLY, error=str(e)))

        updated = apply_reply(
            reply,
            report,
            message,
            add_request=add_request and not force_full,
            target=target,
        )
        return _json(ReportChatResponse(reply=reply, updated_report=updated))
    except Exception as e:
        logger.exception(f"[POST /api/report-builder/chat] unexpected error: {e}")
        return _json(
            ReportChatResponse(reply=FAILURE_REPLY, error="Failed to process chat message"),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


@router.post("/generate-report", response_model=None)
async def generate_report(
    request: GenerateReportRequest,
    background_tasks: BackgroundTasks,
    store: Annotated[ReportStore, Depends(get_report_store)],
    client: Annotated[CompletionClient | None, Depends(get_completion_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Submit documents for background report generation.

    Returns:
        200 with ``reportId`` and ``status: pending``; poll check-report
        400 if no documents were provided
        500 if no completion API is configured
    """
    if not request.documents:
        return _error("No documents provided for report generation", status.HTTP_400_BAD_REQUEST)
    if client is None:
        return _error("Completion API key is missing", status.HTTP_500_INTERNAL_SERVER_ERROR)

    report_id = submit_report(store, request.documents, request.project_context)
    background_tasks.add_task(run_report_job, report_id, store, client, settings)

    return _json(GenerateReportResponse(report_id=report_id, status=ProcessingStatus.pending))


@router.post("/generate-report-stream", response_model=None)
async def generate_report_stream(
    request: GenerateReportRequest,
    client: Annotated[CompletionClient | None, Depends(get_completion_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> StreamingResponse | JSONResponse:
    """Generate a report and stream its progress via SSE.

    Each ``data:`` frame carries ``isComplete``, ``status`` and the partial
    ``reportState``; the stream ends with ``data: [DONE]``.

    Returns:
        SSE stream
        400 if no documents were provided
        500 if no completion API is configured
    """
    if not request.documents:
        return _error("No documents provided for report generation", status.HTTP_400_BAD_REQUEST)
    if client is None:
        return _error("Completion API key is missing", status.HTTP_500_INTERNAL_SERVER_ERROR)

    async def event_generator() -> AsyncGenerator[str, None]:
        """Generate SSE frames."""
        try:
            async for frame in stream_report(
                request.documents, request.project_context, client, settings
            ):
                yield f"data: {frame.model_dump_json(by_alias=True, exclude_none=True)}\n\n"
        except Exception as e:
            logger.exception(f"[POST /api/report-builder/generate-report-stream] failed: {e}")
            failure = ReportStatusResponse(
                is_complete=True,
                status=ProcessingStatus.error,
                error=f"Error processing report: {e}",
            )
            yield f"data: {failure.model_dump_json(by_alias=True, exclude_none=True)}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.get("/check-report", response_model=None)
async def check_report(
    store: Annotated[ReportStore, Depends(get_report_store)],
    report_id: Annotated[str | None, Query(alias="reportId")] = None,
) -> JSONResponse:
    """Poll a background report job.

    Returns:
        200 with ``isComplete``, ``status``, and ``reportState``/``error`` when set
        400 if ``reportId`` is missing
    """
    if not report_id:
        return _error("Missing reportId parameter", status.HTTP_400_BAD_REQUEST)

    result = get_report_status(store, report_id)
    logger.info(f"[GET /api/report-builder/check-report] report_id={report_id} status={result.status.value}")
    return _json(result)


@router.post("/export", response_model=None)
async def export_report(request: ExportReportRequest) -> Response:
    """Render a report for download.

    Returns:
        Markdown attachment for ``format: md``
        400 if data is missing or the format is unsupported
    """
    if request.report_state is None or not request.format:
        return _error("Missing required data", status.HTTP_400_BAD_REQUEST)
    if request.format not in SUPPORTED_FORMATS:
        return _error("Unsupported format", status.HTTP_400_BAD_REQUEST)

    filename = export_filename(request.report_state.title, request.format)
    return Response(
        content=render_markdown(request.report_state),
        media_type="text/markdown",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )
