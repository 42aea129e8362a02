"""Models package - re-exports for convenience."""

from backend.app.models.chat import (
    ChatContext,
    ChatRequest,
    ChatResponse,
    MessageMetadata,
    ReportChatRequest,
    ReportChatResponse,
)
from backend.app.models.common import CamelModel, ChatMessage, now_ms
from backend.app.models.docs import ContentChunk, ContentMatch, ContentPageSummary
from backend.app.models.report import (
    SECTION_HEADINGS,
    SECTION_KEYS,
    ProcessingStatus,
    ReportMetadata,
    ReportProcessingState,
    ReportSections,
    ReportState,
    ReportStatusResponse,
    SectionKey,
    UploadedDocument,
)

__all__ = [
    # Common
    "CamelModel",
    "ChatMessage",
    "now_ms",
    # Chat
    "ChatContext",
    "ChatRequest",
    "ChatResponse",
    "MessageMetadata",
    "ReportChatRequest",
    "ReportChatResponse",
    # Content index
    "ContentChunk",
    "ContentMatch",
    "ContentPageSummary",
    # Report
    "SECTION_HEADINGS",
    "SECTION_KEYS",
    "ProcessingStatus",
    "ReportMetadata",
    "ReportProcessingState",
    "ReportSections",
    "ReportState",
    "ReportStatusResponse",
    "SectionKey",
    "UploadedDocument",
]
