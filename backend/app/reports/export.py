"""Report export rendering."""

import re

from backend.app.models.report import SECTION_HEADINGS, SECTION_KEYS, ReportState

SUPPORTED_FORMATS = ("md",)


def render_markdown(report: ReportState) -> str:
    """Markdown document with the title, date and the four headed sections."""
    lines = [f"# {report.title}", f"Date: {report.date}", ""]
    for key in SECTION_KEYS:
        lines.append(f"## {SECTION_HEADINGS[key]}")
        lines.append(report.sections.get(key))
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def export_filename(title: str, extension: str) -> str:
    """Filesystem-safe attachment name derived from the report title."""
    safe = re.sub(r"[^a-z0-9]", "_", (title or "Report").lower())[:50]
    return f"{safe}.{extension}"
