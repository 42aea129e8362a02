"""Unit tests for the background report job."""

from unittest.mock import patch

import pytest
from prometheus_client import REGISTRY

from backend.app.config import Settings
from backend.app.llm.client import CompletionError
from backend.app.models.report import ProcessingStatus
from backend.app.reports.processor import (
    NO_DOCUMENT_CONTENT_ERROR,
    generate_report,
    get_report_status,
    run_report_job,
    submit_report,
)
from backend.app.reports.sections import DEFAULT_SECTION_TEXT
from backend.app.reports.store import InMemoryReportStore
from tests.fakes import SAMPLE_REPORT_TEXT, FakeCompletionClient, make_documents, stream_of


def _jobs(status: str) -> float:
    return REGISTRY.get_sample_value("report_jobs_total", {"status": status}) or 0.0


class TestGenerateReport:
    """Test generate_report end to end with a scripted client."""

    @pytest.mark.asyncio
    async def test_full_pipeline(self, settings: Settings) -> None:
        client = FakeCompletionClient("Beta launched.", SAMPLE_REPORT_TEXT)

        report = await generate_report(make_documents(1), "Phoenix", client, settings)

        assert report.title == "Project Phoenix"
        assert report.sections.accomplishments == "* Launched beta\n* Hired two engineers"
        assert report.sections.next_steps == "* Ship v1"
        assert report.metadata.related_documents == ["doc-0"]
        assert report.metadata.full_report == SAMPLE_REPORT_TEXT
        assert report.metadata.error is None
        assert report.date
        assert client.purposes == ["chunk_summary", "report_synthesis"]
        assert "Document: notes-0.txt\n\nBeta launched." in client.prompt_text()

    @pytest.mark.asyncio
    async def test_no_document_text_gives_default_report(self, settings: Settings) -> None:
        client = FakeCompletionClient("unused")

        report = await generate_report(make_documents(2, None), None, client, settings)

        assert report.metadata.error == NO_DOCUMENT_CONTENT_ERROR
        assert report.sections.accomplishments == DEFAULT_SECTION_TEXT["accomplishments"]
        assert report.metadata.related_documents == ["doc-0", "doc-1"]
        assert client.requests == []

    @pytest.mark.asyncio
    async def test_streamed_synthesis_gives_placeholder(self, settings: Settings) -> None:
        client = FakeCompletionClient("S", stream_of("1. Accomplishments"))

        report = await generate_report(make_documents(1), None, client, settings)

        assert report.sections.accomplishments == "* Error: Received streaming response"
        assert "Streaming" in report.metadata.error

    @pytest.mark.asyncio
    async def test_failed_synthesis_gives_error_report(self, settings: Settings) -> None:
        client = FakeCompletionClient("S", CompletionError("Server error: try later", status_code=503))

        report = await generate_report(make_documents(1), None, client, settings)

        assert report.title == "Error Report"
        assert report.metadata.error == "Server error: try later"
        assert "add X to next steps" in report.sections.next_steps

    @pytest.mark.asyncio
    async def test_empty_synthesis_output(self, settings: Settings) -> None:
        client = FakeCompletionClient("S", "  \n ")

        report = await generate_report(make_documents(1), None, client, settings)

        assert report.metadata.error == "Empty response from completion API"
        assert report.sections.accomplishments.startswith("* No content was generated")


class TestReportJob:
    """Test submit, run and poll."""

    def test_submit_creates_pending_record(self) -> None:
        store = InMemoryReportStore()

        report_id = submit_report(store, make_documents(1), "ctx")

        state = store.get(report_id)
        assert state.status == ProcessingStatus.pending
        assert state.project_context == "ctx"

    def test_submit_ids_are_unique(self) -> None:
        store = InMemoryReportStore()
        ids = {submit_report(store, make_documents(1)) for _ in range(5)}
        assert len(ids) == 5

    @pytest.mark.asyncio
    async def test_run_completes_job(self, settings: Settings) -> None:
        store = InMemoryReportStore()
        client = FakeCompletionClient("S", SAMPLE_REPORT_TEXT)
        report_id = submit_report(store, make_documents(1))
        before = _jobs("completed")

        await run_report_job(report_id, store, client, settings)

        status = get_report_status(store, report_id)
        assert status.is_complete is True
        assert status.status == ProcessingStatus.completed
        assert status.report_state.title == "Project Phoenix"
        assert status.error is None
        assert _jobs("completed") == before + 1

    @pytest.mark.asyncio
    async def test_run_records_unexpected_failure(self, settings: Settings) -> None:
        store = InMemoryReportStore()
        report_id = submit_report(store, make_documents(1))
        before = _jobs("error")

        with patch(
            "backend.app.reports.processor.generate_report", side_effect=RuntimeError("disk full")
        ):
            await run_report_job(report_id, store, FakeCompletionClient(), settings)

        status = get_report_status(store, report_id)
        assert status.is_complete is False
        assert status.status == ProcessingStatus.error
        assert status.error == "disk full"
        assert status.report_state is None
        assert _jobs("error") == before + 1

    @pytest.mark.asyncio
    async def test_run_unknown_id_is_noop(self, settings: Settings) -> None:
        store = InMemoryReportStore()
        client = FakeCompletionClient()

        await run_report_job("missing", store, client, settings)

        assert client.requests == []
        assert store.get("missing") is None

    def test_status_of_unknown_report(self) -> None:
        status = get_report_status(InMemoryReportStore(), "nope")

        assert status.is_complete is False
        assert status.status == ProcessingStatus.error
        assert status.error == "Report not found"

    def test_status_serializes_camel_case(self) -> None:
        store = InMemoryReportStore()
        report_id = submit_report(store, make_documents(1))

        body = get_report_status(store, report_id).model_dump(by_alias=True, exclude_none=True)

        assert body == {"isComplete": False, "status": ProcessingStatus.pending}
