"""Content ingestion - persist documentation pages and their chunks."""

import logging
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.content.loader import MarkdownPage
from backend.app.db.models import ContentChunk as ContentChunkDB
from backend.app.db.models import ContentPage
from backend.app.models.docs import ContentPageSummary
from backend.app.reports.chunker import chunk_text

logger = logging.getLogger(__name__)


async def index_page(
    *,
    page: MarkdownPage,
    max_chars: int = 800,
    session: AsyncSession,
) -> ContentPageSummary:
    """Index one page: replace its chunks (or create it) in a single transaction.

    Args:
        page: Page read from disk
        max_chars: Chunk size limit
        session: Async database session

    Returns:
        ContentPageSummary for the stored page
    """
    result = await session.execute(select(ContentPage).where(ContentPage.path == page.path))
    db_page = result.scalar_one_or_none()

    if db_page is None:
        db_page = ContentPage(page_id=uuid4(), path=page.path, title=page.title, section=page.section)
        session.add(db_page)
        await session.flush()
    else:
        db_page.title = page.title
        db_page.section = page.section
        await session.execute(
            delete(ContentChunkDB).where(ContentChunkDB.page_id == db_page.page_id)
        )

    chunks = chunk_text(page.text, max_chars) if page.text.strip() else []
    for order, text in enumerate(c for c in chunks if c.strip()):
        session.add(
            ContentChunkDB(chunk_id=uuid4(), page_id=db_page.page_id, order=order, text=text.strip())
        )

    await session.commit()
    await session.refresh(db_page)

    count = await session.scalar(
        select(func.count()).select_from(ContentChunkDB).where(
            ContentChunkDB.page_id == db_page.page_id
        )
    )
    logger.info(f"[content] indexed {page.path} ({count} chunks)")

    return ContentPageSummary(
        page_id=db_page.page_id,
        path=db_page.path,
        title=db_page.title,
        section=db_page.section,
        chunk_count=count or 0,
        created_at=db_page.created_at,
    )


async def index_pages(
    *, pages: list[MarkdownPage], max_chars: int = 800, session: AsyncSession
) -> list[ContentPageSummary]:
    """Index pages one after another."""
    return [await index_page(page=page, max_chars=max_chars, session=session) for page in pages]


async def indexing_stats(*, session: AsyncSession) -> dict[str, object]:
    """Page and chunk counts, overall and per section."""
    pages = await session.scalar(select(func.count()).select_from(ContentPage))
    chunks = await session.scalar(select(func.count()).select_from(ContentChunkDB))
    result = await session.execute(
        select(ContentPage.section, func.count()).group_by(ContentPage.section)
    )
    sections = {section or "root": n for section, n in result.all()}
    return {"pages": pages or 0, "chunks": chunks or 0, "sections": sections}
