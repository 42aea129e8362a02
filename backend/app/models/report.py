"""4-box report domain models."""

from enum import Enum
from typing import Literal

from pydantic import Field

from backend.app.models.common import CamelModel, now_ms

SectionKey = Literal["accomplishments", "insights", "decisions", "next_steps"]

SECTION_KEYS: tuple[SectionKey, ...] = ("accomplishments", "insights", "decisions", "next_steps")

SECTION_HEADINGS: dict[SectionKey, str] = {
    "accomplishments": "Accomplishments Since Last Update",
    "insights": "Insights / Learnings",
    "decisions": "Decisions / Risks / Resources Required",
    "next_steps": "Next Steps / Upcoming Tasks",
}


class UploadedDocument(CamelModel):
    """Document produced by the upload collaborator.

    Only ``text_content`` is consumed by the report pipeline.
    """

    id: str
    name: str
    size: int = 0
    type: str | None = None
    text_content: str | None = None
    summary: str | None = None
    timestamp: int | None = None


class ReportSections(CamelModel):
    """The four sections of a status report.

    Always exactly these four keys; each is a free-text bullet list.
    """

    accomplishments: str = ""
    insights: str = ""
    decisions: str = ""
    next_steps: str = ""

    def get(self, key: SectionKey) -> str:
        """Return the content of one section."""
        return str(getattr(self, key))

    def is_empty(self) -> bool:
        """True when no section has any content."""
        return not any(self.get(key).strip() for key in SECTION_KEYS)


class ReportMetadata(CamelModel):
    """Bookkeeping attached to a report."""

    last_updated: int = Field(default_factory=now_ms)
    related_documents: list[str] = Field(default_factory=list)
    full_report: str | None = None
    error: str | None = None


class ReportState(CamelModel):
    """A status report as rendered by the client."""

    title: str = "Status Report"
    date: str = ""
    sections: ReportSections = Field(default_factory=ReportSections)
    metadata: ReportMetadata = Field(default_factory=ReportMetadata)


class ProcessingStatus(str, Enum):
    """Lifecycle of a background report job."""

    pending = "pending"
    processing = "processing"
    completed = "completed"
    error = "error"


class ReportProcessingState(CamelModel):
    """Record of one background report job, owned by the report store."""

    report_id: str
    status: ProcessingStatus = ProcessingStatus.pending
    documents: list[UploadedDocument] = Field(default_factory=list)
    project_context: str | None = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    result: ReportState | None = None
    error: str | None = None


class ReportStatusResponse(CamelModel):
    """Payload returned to a client polling a report job."""

    is_complete: bool
    status: ProcessingStatus
    report_state: ReportState | None = None
    error: str | None = None
