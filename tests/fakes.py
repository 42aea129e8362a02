"""Test doubles and sample data shared by unit and integration tests."""

from collections.abc import AsyncIterator, Callable

from backend.app.llm.client import (
    CompletionChoice,
    CompletionRequest,
    CompletionResponse,
    CompletionStream,
    RetryOptions,
)
from backend.app.models.common import ChatMessage
from backend.app.models.report import UploadedDocument

Reply = str | Exception | CompletionStream | Callable[[CompletionRequest], str]

SAMPLE_REPORT_TEXT = (
    "Title: Project Phoenix\n\n"
    "1. Accomplishments Since Last Update:\n"
    "* Launched beta\n"
    "* Hired two engineers\n\n"
    "2. Insights / Learnings:\n"
    "* Users prefer dark mode\n\n"
    "3. Decisions / Risks / Resources Required:\n"
    "* Need budget approval\n\n"
    "4. Next Steps / Upcoming Tasks:\n"
    "* Ship v1\n"
)


def text_response(text: str) -> CompletionResponse:
    """CompletionResponse with a single assistant choice."""
    return CompletionResponse(
        id="test-completion",
        choices=[CompletionChoice(message=ChatMessage(role="assistant", content=text))],
    )


async def _deltas(parts: list[str]) -> AsyncIterator[str]:
    for part in parts:
        yield part


def stream_of(*parts: str, idle_timeout_seconds: float = 30.0) -> CompletionStream:
    """CompletionStream yielding the given deltas."""
    return CompletionStream(_deltas(list(parts)), idle_timeout_seconds)


def make_documents(
    count: int = 1, text: str | None = "Alpha paragraph.\n\nBeta paragraph."
) -> list[UploadedDocument]:
    """UploadedDocument instances doc-0, doc-1, ... sharing one text."""
    return [
        UploadedDocument(
            id=f"doc-{i}", name=f"notes-{i}.txt", size=len(text or ""), text_content=text
        )
        for i in range(count)
    ]


class FakeCompletionClient:
    """Scripted CompletionClient.

    Replies are consumed in order; the last one repeats. A reply may be a
    string, an exception to raise, a stream, or a callable of the request.
    Every request is recorded with its purpose and retry options.
    """

    def __init__(self, *replies: Reply) -> None:
        self.replies: list[Reply] = list(replies) or ["ok"]
        self.requests: list[CompletionRequest] = []
        self.purposes: list[str] = []
        self.retries: list[RetryOptions | None] = []

    async def complete(
        self,
        request: CompletionRequest,
        *,
        purpose: str = "chat",
        retry: RetryOptions | None = None,
    ) -> CompletionResponse | CompletionStream:
        self.requests.append(request)
        self.purposes.append(purpose)
        self.retries.append(retry)

        reply = self.replies[min(len(self.requests), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, CompletionStream):
            return reply
        if callable(reply):
            return text_response(reply(request))
        return text_response(reply)

    def prompt_text(self, index: int = -1) -> str:
        """All message contents of one recorded request joined together."""
        return "\n".join(m.content for m in self.requests[index].messages)
