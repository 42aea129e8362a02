"""Unit tests for report export rendering."""

from backend.app.models.report import ReportSections, ReportState
from backend.app.reports.export import export_filename, render_markdown


def test_render_markdown() -> None:
    report = ReportState(
        title="Q3 Update",
        date="Jun 3rd 2025",
        sections=ReportSections(
            accomplishments="* Launched beta",
            insights="* Users like it",
            decisions="* Budget",
            next_steps="* Ship v1",
        ),
    )

    assert render_markdown(report) == (
        "# Q3 Update\n"
        "Date: Jun 3rd 2025\n\n"
        "## Accomplishments Since Last Update\n* Launched beta\n\n"
        "## Insights / Learnings\n* Users like it\n\n"
        "## Decisions / Risks / Resources Required\n* Budget\n\n"
        "## Next Steps / Upcoming Tasks\n* Ship v1\n"
    )


def test_export_filename_is_filesystem_safe() -> None:
    assert export_filename("Q3 Update!", "md") == "q3_update_.md"
    assert export_filename("", "md") == "report.md"
    assert len(export_filename("x" * 200, "md")) == 53
