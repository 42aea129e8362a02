"""Content retriever - keyword search over indexed documentation chunks."""

import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.app.db.models import ContentChunk as ContentChunkDB
from backend.app.models.docs import ContentChunk, ContentMatch

MIN_TOKEN_CHARS = 3

STOPWORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can", "how",
        "what", "when", "where", "which", "who", "why", "with", "this", "that", "from",
        "about", "into", "does", "tell", "explain", "please",
    }
)


def tokenize_query(query: str) -> list[str]:
    """Lowercase word tokens, without short words, stopwords or duplicates."""
    tokens: list[str] = []
    for token in re.findall(r"[a-z0-9][a-z0-9\-]*", query.lower()):
        if len(token) < MIN_TOKEN_CHARS or token in STOPWORDS or token in tokens:
            continue
        tokens.append(token)
    return tokens


async def search_content(
    *,
    query: str,
    limit: int = 5,
    section: str | None = None,
    session: AsyncSession,
) -> list[ContentMatch]:
    """Search indexed chunks by query with simple token matching.

    Scoring strategy:
    - Tokenize query (see tokenize_query)
    - Score = number of query tokens appearing in the chunk or its page title
    - Filter out chunks with score = 0
    - Sort by score descending, then page path, then chunk order (deterministic)
    - Apply limit

    Args:
        query: Search query string
        limit: Maximum number of results to return
        section: Only search pages of this section
        session: Async database session

    Returns:
        List of ContentMatch sorted by relevance (descending score)
    """
    query_tokens = tokenize_query(query)
    if not query_tokens or limit <= 0:
        return []

    stmt = (
        select(ContentChunkDB)
        .options(selectinload(ContentChunkDB.page))
        .execution_options(populate_existing=True)
    )
    if section is not None:
        stmt = stmt.where(ContentChunkDB.page.has(section=section))

    result = await session.execute(stmt)
    db_chunks = list(result.scalars().all())

    scored: list[tuple[ContentChunkDB, float]] = []
    for db_chunk in db_chunks:
        haystack = f"{db_chunk.page.title}\n{db_chunk.text}".lower()
        match_count = sum(1 for token in query_tokens if token in haystack)
        if match_count > 0:
            scored.append((db_chunk, float(match_count)))

    scored.sort(key=lambda x: (-x[1], x[0].page.path, x[0].order))

    matches: list[ContentMatch] = []
    for db_chunk, score in scored[:limit]:
        chunk = ContentChunk(
            chunk_id=db_chunk.chunk_id,
            page_id=db_chunk.page_id,
            path=db_chunk.page.path,
            title=db_chunk.page.title,
            section=db_chunk.page.section,
            order=db_chunk.order,
            text=db_chunk.text,
        )
        matches.append(ContentMatch(chunk=chunk, score=score))

    return matches


def format_matches_for_prompt(matches: list[ContentMatch], max_chars: int = 600) -> str:
    """System-message text listing matched documentation excerpts."""
    lines = ["Relevant documentation from this site:", ""]
    for match in matches:
        text = match.chunk.text
        if len(text) > max_chars:
            text = text[: max_chars - 3] + "..."
        lines.append(f"[{match.chunk.title}]({match.chunk.path})")
        lines.append(text)
        lines.append("")
    lines.append("Use these excerpts when they are relevant and point the user to the page paths.")
    return "\n".join(lines)
