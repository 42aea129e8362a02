"""Chat API request/response models."""

from typing import Literal

from pydantic import Field

from backend.app.models.common import CamelModel, ChatMessage, Role
from backend.app.models.report import ReportState

KnowledgeLevel = Literal["beginner", "intermediate", "advanced"]


class ChatContext(CamelModel):
    """Optional page context sent along with a chat message."""

    current_page: str | None = None
    model: str | None = None
    include_docs: bool = True


class ChatRequest(CamelModel):
    """Request body for POST /api/chat.

    ``message`` is optional here so that a missing value can be answered with
    a plain 400 instead of a validation error.
    """

    message: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    context: ChatContext | None = None


class MessageMetadata(CamelModel):
    """Annotations attached to an assistant reply."""

    type: Literal["concept_explanation", "code_example", "general", "error"] = "general"
    topic: str | None = None
    knowledge_level: KnowledgeLevel | None = None
    contains_code: bool = False
    model: str | None = None
    sources: list[str] = Field(default_factory=list)
    error: str | None = None


class ChatResponse(CamelModel):
    """Assistant reply returned by POST /api/chat."""

    id: str
    role: Role = "assistant"
    content: str
    timestamp: int
    metadata: MessageMetadata | None = None


class ReportChatRequest(CamelModel):
    """Request body for POST /api/report-builder/chat."""

    message: str | None = None
    report_state: ReportState = Field(default_factory=ReportState)
    document_ids: list[str] = Field(default_factory=list)


class ReportChatResponse(CamelModel):
    """Reply of the report-builder assistant.

    Either ``updated_report`` or ``error`` is set.
    """

    reply: str
    updated_report: ReportState | None = None
    error: str | None = None
