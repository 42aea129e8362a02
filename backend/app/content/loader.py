"""Markdown page loader for the documentation content index."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

PAGE_SUFFIXES = (".md", ".mdx")
INDEX_STEMS = ("index", "page")

_FRONT_MATTER = re.compile(r"\A---\s*\n(.*?)\n---\s*\n", re.DOTALL)
_FRONT_MATTER_TITLE = re.compile(r"^title:\s*[\"']?(.+?)[\"']?\s*$", re.MULTILINE)
_H1 = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.MULTILINE)


@dataclass(frozen=True)
class MarkdownPage:
    """A documentation page read from disk."""

    path: str
    title: str
    section: str | None
    text: str


def page_path(relative: Path) -> str:
    """Site path for a file: "/mcp/basics" for mcp/basics.md or mcp/basics/index.md."""
    parts = list(relative.with_suffix("").parts)
    if parts and parts[-1] in INDEX_STEMS:
        parts = parts[:-1]
    return "/" + "/".join(parts)


def parse_page(relative: Path, raw: str) -> MarkdownPage:
    """Split front matter from body and derive title and section."""
    body = raw
    title: str | None = None

    front = _FRONT_MATTER.match(raw)
    if front:
        body = raw[front.end() :]
        title_match = _FRONT_MATTER_TITLE.search(front.group(1))
        if title_match:
            title = title_match.group(1).strip()

    if title is None:
        h1 = _H1.search(body)
        if h1:
            title = h1.group(1).strip()

    path = page_path(relative)
    segments = [s for s in path.split("/") if s]
    return MarkdownPage(
        path=path,
        title=title or (segments[-1].replace("-", " ").title() if segments else "Home"),
        section=segments[0] if len(segments) > 1 else None,
        text=body.strip(),
    )


def load_markdown_pages(content_dir: str | Path) -> list[MarkdownPage]:
    """Read every markdown page under content_dir, sorted by path.

    Raises:
        FileNotFoundError: content_dir does not exist
    """
    root = Path(content_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Content directory not found: {root}")

    pages: list[MarkdownPage] = []
    for file in sorted(root.rglob("*")):
        if not file.is_file() or file.suffix not in PAGE_SUFFIXES:
            continue
        raw = file.read_text(encoding="utf-8")
        pages.append(parse_page(file.relative_to(root), raw))

    logger.info(f"[content] loaded {len(pages)} page(s) from {root}")
    return pages
