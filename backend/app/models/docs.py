"""Documentation content index domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ContentPageSummary(BaseModel):
    """Indexed documentation page metadata."""

    page_id: UUID
    path: str
    title: str
    section: str | None = None
    chunk_count: int
    created_at: datetime


class ContentChunk(BaseModel):
    """Indexed chunk of a documentation page."""

    chunk_id: UUID
    page_id: UUID
    path: str
    title: str
    section: str | None = None
    order: int  # 0-based
    text: str


class ContentMatch(BaseModel):
    """Content chunk with relevance score."""

    chunk: ContentChunk
    score: float
