"""SQLAlchemy ORM models for the documentation content index."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ContentPage(Base):
    """Indexed documentation page, unique by site path."""

    __tablename__ = "content_page"
    __table_args__ = (
        UniqueConstraint("path", name="uq_content_page_path"),
        Index("idx_content_page_section", "section"),
    )

    page_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    section: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    chunks: Mapped[list["ContentChunk"]] = relationship(
        "ContentChunk",
        back_populates="page",
        cascade="all, delete-orphan",
        order_by="ContentChunk.order",
    )


class ContentChunk(Base):
    """Ordered chunk of an indexed page."""

    __tablename__ = "content_chunk"
    __table_args__ = (
        UniqueConstraint("page_id", "order", name="uq_content_chunk_page_order"),
        Index("idx_content_chunk_page", "page_id"),
    )

    chunk_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    page_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("content_page.page_id", ondelete="CASCADE"), nullable=False
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    page: Mapped["ContentPage"] = relationship("ContentPage", back_populates="chunks")
