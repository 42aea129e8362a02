"""Documentation content endpoints - search, admin indexing, indexing stats."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.config import Settings, get_settings
from backend.app.content.ingest import index_pages, indexing_stats
from backend.app.content.loader import load_markdown_pages
from backend.app.content.retriever import search_content
from backend.app.db.engine import get_session
from backend.app.models.docs import ContentMatch, ContentPageSummary

router = APIRouter(prefix="/api", tags=["content"])
logger = logging.getLogger(__name__)


class ContentSearchRequest(BaseModel):
    """Request body for POST /api/content-search."""

    query: str | None = None
    limit: int = Field(5, ge=1, le=20)
    section: str | None = None


class ContentSearchResponse(BaseModel):
    """Response for GET|POST /api/content-search."""

    query: str
    matches: list[ContentMatch]


class IndexContentResponse(BaseModel):
    """Response for POST /api/admin/index-content."""

    indexed: int
    pages: list[ContentPageSummary]


class IndexingStatsResponse(BaseModel):
    """Response for GET /api/admin/indexing-stats."""

    pages: int
    chunks: int
    sections: dict[str, int]


async def _search(
    query: str | None, limit: int, section: str | None, session: AsyncSession
) -> ContentSearchResponse | JSONResponse:
    if not query or not query.strip():
        return JSONResponse(
            content={"error": "Missing query parameter"}, status_code=status.HTTP_400_BAD_REQUEST
        )
    matches = await search_content(query=query, limit=limit, section=section, session=session)
    return ContentSearchResponse(query=query, matches=matches)


@router.get("/content-search", response_model=None)
async def content_search_get(
    session: Annotated[AsyncSession, Depends(get_session)],
    query: Annotated[str | None, Query(max_length=200)] = None,
    limit: Annotated[int, Query(ge=1, le=20)] = 5,
    section: str | None = None,
) -> ContentSearchResponse | JSONResponse:
    """Search indexed documentation chunks.

    Returns:
        Ranked matches, or 400 if ``query`` is missing
    """
    return await _search(query, limit, section, session)


@router.post("/content-search", response_model=None)
async def content_search_post(
    request: ContentSearchRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ContentSearchResponse | JSONResponse:
    """Search indexed documentation chunks (JSON body)."""
    return await _search(request.query, request.limit, request.section, session)


@router.post("/admin/index-content", response_model=None)
async def index_content(
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IndexContentResponse | JSONResponse:
    """(Re)index every markdown page under CONTENT_DIR.

    Returns:
        Indexed page summaries, or 404 if the content directory is missing
    """
    try:
        pages = load_markdown_pages(settings.content_dir)
    except FileNotFoundError as e:
        logger.error(f"[POST /api/admin/index-content] {e}")
        return JSONResponse(content={"error": str(e)}, status_code=status.HTTP_404_NOT_FOUND)

    summaries = await index_pages(
        pages=pages, max_chars=settings.content_chunk_chars, session=session
    )
    logger.info(f"[POST /api/admin/index-content] indexed {len(summaries)} page(s)")
    return IndexContentResponse(indexed=len(summaries), pages=summaries)


@router.get("/admin/indexing-stats", response_model=IndexingStatsResponse)
async def get_indexing_stats(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> IndexingStatsResponse:
    """Page and chunk counts of the content index."""
    stats = await indexing_stats(session=session)
    return IndexingStatsResponse.model_validate(stats)
