"""Unit tests for the section extractor."""

from datetime import date

import pytest

from backend.app.reports.sections import (
    DEFAULT_SECTION_TEXT,
    DEFAULT_TITLE,
    EXTRACTION_RULES,
    extract_sections,
    extract_title,
    format_report_date,
    redistribute_bullets,
)
from tests.fakes import SAMPLE_REPORT_TEXT


class TestNumberedHeadings:
    """Rule 1: numbered, markdown-header and "Name:" headings."""

    def test_well_formed_report(self) -> None:
        extraction = extract_sections(SAMPLE_REPORT_TEXT)

        assert extraction.title == "Project Phoenix"
        assert extraction.sections.accomplishments == "* Launched beta\n* Hired two engineers"
        assert extraction.sections.insights == "* Users prefer dark mode"
        assert extraction.sections.decisions == "* Need budget approval"
        assert extraction.sections.next_steps == "* Ship v1"
        assert set(extraction.section_sources.values()) == {"numbered_heading"}
        assert extraction.full_report == SAMPLE_REPORT_TEXT
        assert extraction.headings_found is True

    def test_roman_numerals_and_parentheses(self) -> None:
        text = "I) Accomplishments\n- A\nII) Insights\n- B\nIII) Risks\n- C\nIV) Next Steps\n- D"

        sections = extract_sections(text).sections

        assert sections.accomplishments == "- A"
        assert sections.insights == "- B"
        assert sections.decisions == "- C"
        assert sections.next_steps == "- D"

    def test_markdown_headers(self) -> None:
        text = "## Accomplishments\n* A\n\n## Learnings\n* B\n\n## Decisions\n* C\n\n## Upcoming\n* D"

        sections = extract_sections(text).sections

        assert sections.accomplishments == "* A"
        assert sections.insights == "* B"
        assert sections.decisions == "* C"
        assert sections.next_steps == "* D"

    def test_inline_text_after_colon_kept(self) -> None:
        text = "1. Accomplishments: Shipped v2\n* Fixed login\n\n2. Insights:\n* Cache helps"

        sections = extract_sections(text).sections

        assert sections.accomplishments == "Shipped v2\n* Fixed login"
        assert sections.insights == "* Cache helps"

    def test_literal_four_heading_report(self) -> None:
        text = (
            "1. Accomplishments:\n* Shipped v1\n\n2. Insights:\n* Users want dark mode\n\n"
            "3. Decisions:\n* Need more budget\n\n4. Next Steps:\n* Plan v2"
        )

        sections = extract_sections(text).sections

        assert sections.accomplishments == "* Shipped v1"
        assert sections.insights == "* Users want dark mode"
        assert sections.decisions == "* Need more budget"
        assert sections.next_steps == "* Plan v2"

    @pytest.mark.parametrize("separator", ["-", "–"])
    def test_inline_text_after_dash_kept(self, separator: str) -> None:
        text = (
            f"1. Accomplishments {separator} Shipped v1\n"
            f"2. Insights {separator} Users want dark mode\n"
            f"3. Decisions {separator} Need more budget\n"
            f"4. Next Steps {separator} Plan v2"
        )

        sections = extract_sections(text).sections

        assert sections.accomplishments == "Shipped v1"
        assert sections.insights == "Users want dark mode"
        assert sections.decisions == "Need more budget"
        assert sections.next_steps == "Plan v2"

    def test_sections_in_any_order(self) -> None:
        text = "4. Next Steps:\n* D\n\n1. Accomplishments:\n* A"

        sections = extract_sections(text).sections

        assert sections.next_steps == "* D"
        assert sections.accomplishments == "* A"

    def test_missing_sections_get_placeholders(self) -> None:
        extraction = extract_sections("1. Accomplishments:\n* Done")

        assert extraction.sections.accomplishments == "* Done"
        assert extraction.sections.insights == DEFAULT_SECTION_TEXT["insights"]
        assert extraction.sections.decisions == DEFAULT_SECTION_TEXT["decisions"]
        assert extraction.sections.next_steps == DEFAULT_SECTION_TEXT["next_steps"]
        assert extraction.section_sources["insights"] == "default_placeholder"


class TestBoldHeadings:
    """Rule 2: markdown-bold headings."""

    def test_bold_numbered_headings(self) -> None:
        text = "**1. Accomplishments**:\n* A\n\n**2. Insights**:\n* B"

        extraction = extract_sections(text)

        assert extraction.sections.accomplishments == "* A"
        assert extraction.sections.insights == "* B"
        assert extraction.section_sources["accomplishments"] == "bold_heading"
        # Headings were found, so the rest is filled with placeholders not bullets
        assert extraction.sections.decisions == DEFAULT_SECTION_TEXT["decisions"]

    def test_bold_numbered_headings_with_inline_text(self) -> None:
        text = (
            "**1. Accomplishments**: Shipped v1\n\n**2. Insights**: Users want dark mode\n\n"
            "**3. Decisions**: Need more budget\n\n**4. Next Steps**: Plan v2"
        )

        extraction = extract_sections(text)

        assert extraction.sections.accomplishments == "Shipped v1"
        assert extraction.sections.insights == "Users want dark mode"
        assert extraction.sections.decisions == "Need more budget"
        assert extraction.sections.next_steps == "Plan v2"
        assert set(extraction.section_sources.values()) == {"bold_heading"}

    def test_colon_inside_bold_heading(self) -> None:
        text = (
            "**Accomplishments:** Shipped v1\n* Fixed login\n\n**Insights:** Users want dark mode\n\n"
            "**Decisions:** Need more budget\n\n**Next Steps:** Plan v2"
        )

        sections = extract_sections(text).sections

        assert sections.accomplishments == "Shipped v1\n* Fixed login"
        assert sections.insights == "Users want dark mode"
        assert sections.decisions == "Need more budget"
        assert sections.next_steps == "Plan v2"


class TestFallbacks:
    """Rules 3 and 4: bullet redistribution and placeholders."""

    def test_bullets_without_headings_dealt_round_robin(self) -> None:
        text = "Summary:\n* a\n* b\n* c\n* d\n* e"

        extraction = extract_sections(text)

        assert extraction.sections.accomplishments == "* a\n* e"
        assert extraction.sections.insights == "* b"
        assert extraction.sections.decisions == "* c"
        assert extraction.sections.next_steps == "* d"
        assert set(extraction.section_sources.values()) == {"bullet_redistribution"}

    def test_fewer_bullets_than_sections(self) -> None:
        assert redistribute_bullets("- only one") == {"accomplishments": "- only one"}

    def test_plain_text_gets_all_placeholders(self) -> None:
        extraction = extract_sections("Nothing structured here at all.")

        assert extraction.title == DEFAULT_TITLE
        for key, text in DEFAULT_SECTION_TEXT.items():
            assert extraction.sections.get(key) == text

    def test_empty_text(self) -> None:
        extraction = extract_sections("")
        assert not extraction.sections.is_empty()
        assert extraction.full_report == ""


class TestAllowEmpty:
    """allow_empty leaves unmatched sections empty."""

    def test_partial_update_leaves_others_empty(self) -> None:
        extraction = extract_sections("3. Decisions:\n* Pick a vendor", allow_empty=True)

        assert extraction.sections.decisions == "* Pick a vendor"
        assert extraction.sections.accomplishments == ""
        assert extraction.sections.insights == ""
        assert extraction.sections.next_steps == ""

    def test_bullets_not_redistributed(self) -> None:
        extraction = extract_sections("* a\n* b", allow_empty=True)
        assert extraction.sections.is_empty()


def test_extraction_is_deterministic() -> None:
    assert extract_sections(SAMPLE_REPORT_TEXT) == extract_sections(SAMPLE_REPORT_TEXT)


def test_rules_are_named_in_priority_order() -> None:
    assert [rule.name for rule in EXTRACTION_RULES] == [
        "numbered_heading",
        "bold_heading",
        "bullet_redistribution",
        "default_placeholder",
    ]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Title: Q3 Update\n1. Accomplishments:", "Q3 Update"),
        ("**Project:** Apollo", "Apollo"),
        ("# Report: Weekly sync", "Weekly sync"),
        ("Project Apollo went well", None),
    ],
)
def test_extract_title(text: str, expected: str | None) -> None:
    assert extract_title(text) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (date(2025, 6, 1), "Jun 1st 2025"),
        (date(2025, 6, 2), "Jun 2nd 2025"),
        (date(2025, 6, 3), "Jun 3rd 2025"),
        (date(2025, 6, 11), "Jun 11th 2025"),
        (date(2025, 6, 13), "Jun 13th 2025"),
        (date(2025, 12, 22), "Dec 22nd 2025"),
    ],
)
def test_format_report_date(value: date, expected: str) -> None:
    assert format_report_date(value) == expected
