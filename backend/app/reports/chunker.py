"""Document chunker - deterministic text splitting."""

import re

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def _pack(units: list[str], separator: str, max_chars: int) -> list[str]:
    """Greedily pack units into chunks no longer than max_chars.

    The separator counts toward the limit. A unit that alone exceeds
    max_chars becomes its own chunk.
    """
    chunks: list[str] = []
    current = ""
    for unit in units:
        if current and len(current) + len(separator) + len(unit) > max_chars:
            chunks.append(current)
            current = unit
        else:
            current = f"{current}{separator}{unit}" if current else unit
    if current:
        chunks.append(current)
    return chunks


def chunk_text(text: str, max_chars: int = 2000) -> list[str]:
    """Split text into ordered chunks along paragraph and sentence boundaries.

    Pure function with no I/O or randomness.

    Args:
        text: Raw document text
        max_chars: Maximum characters per chunk (default 2000)

    Returns:
        Ordered chunks. Text no longer than max_chars is returned unchanged as
        the only chunk. Otherwise every chunk is at most max_chars, except a
        single sentence that is already longer.

    Strategy:
        1. Split on blank lines to get paragraphs
        2. Pack paragraphs into chunks joined by a blank line
        3. Re-split any chunk still over the limit into sentences and pack
           those joined by a single space

    Raises:
        ValueError: max_chars is not positive
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")

    if len(text) <= max_chars:
        return [text]

    paragraphs = [p for p in PARAGRAPH_BREAK.split(text) if p.strip()]
    packed = _pack(paragraphs, "\n\n", max_chars)

    chunks: list[str] = []
    for chunk in packed:
        if len(chunk) <= max_chars:
            chunks.append(chunk)
            continue
        sentences = [s for s in SENTENCE_BREAK.split(chunk) if s]
        chunks.extend(_pack(sentences, " ", max_chars))

    return chunks
