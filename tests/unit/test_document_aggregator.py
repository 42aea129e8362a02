"""Unit tests for the document aggregator."""

from unittest.mock import patch

import pytest

from backend.app.config import Settings
from backend.app.llm.client import CompletionError, CompletionRequest
from backend.app.reports.aggregator import (
    TRUNCATION_MARKER,
    process_documents,
    summarize_document,
)
from tests.fakes import FakeCompletionClient, make_documents


def _echo_chunk_number(request: CompletionRequest) -> str:
    prompt = request.messages[0].content
    start = prompt.index("(chunk ")
    return prompt[start + 1 : prompt.index(")", start)]


@pytest.mark.asyncio
async def test_single_short_document(settings: Settings) -> None:
    client = FakeCompletionClient("S1")
    [document] = make_documents(1, "Short text.")

    summary = await summarize_document(document, client, settings)

    assert summary == "Document: notes-0.txt\n\nS1"
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_chunks_summarized_in_order(settings: Settings) -> None:
    client = FakeCompletionClient(_echo_chunk_number)
    paragraph = "This paragraph is long enough to need its own chunk in the test. " * 2
    [document] = make_documents(1, "\n\n".join([paragraph.strip()] * 3))

    summary = await summarize_document(document, client, settings)

    assert summary == "Document: notes-0.txt\n\nchunk 1 of 3\n\nchunk 2 of 3\n\nchunk 3 of 3"


@pytest.mark.asyncio
async def test_long_document_truncated_with_marker(settings: Settings) -> None:
    client = FakeCompletionClient("ok")
    [document] = make_documents(1, "word " * 2000)

    with patch("backend.app.reports.aggregator.chunk_text", return_value=["x"]) as chunker:
        await summarize_document(document, client, settings)

    text = chunker.call_args.args[0]
    assert text.endswith(TRUNCATION_MARKER)
    assert len(text) == settings.max_document_chars + len(TRUNCATION_MARKER)


@pytest.mark.asyncio
async def test_document_without_text_skipped(settings: Settings) -> None:
    client = FakeCompletionClient("S")
    documents = make_documents(1, None) + make_documents(1, "   ")

    assert await process_documents(documents, client, settings) == []
    assert client.requests == []


@pytest.mark.asyncio
async def test_chunk_failure_kept_as_placeholder(settings: Settings) -> None:
    client = FakeCompletionClient(CompletionError("boom"))
    documents = make_documents(2, "Some text.")

    results = await process_documents(documents, client, settings)

    assert len(results) == 2
    assert "[Error summarizing chunk 1 of notes-0.txt: boom]" in results[0]


@pytest.mark.asyncio
async def test_unexpected_document_failure_skipped(settings: Settings) -> None:
    client = FakeCompletionClient("fine")
    documents = make_documents(3, "Some text.")
    real = summarize_document

    async def flaky(document, client, settings):  # type: ignore[no-untyped-def]
        if document.id == "doc-1":
            raise RuntimeError("corrupt document")
        return await real(document, client, settings)

    with patch("backend.app.reports.aggregator.summarize_document", side_effect=flaky):
        results = await process_documents(documents, client, settings)

    assert [r.splitlines()[0] for r in results] == ["Document: notes-0.txt", "Document: notes-2.txt"]
