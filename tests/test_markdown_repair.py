from __future__ import annotations

import pytest

from deepsearch.models.channel import ChannelEvent
from deepsearch.models.section import SearchResult, Section
from deepsearch.services.aggregator import SectionAggregator
from deepsearch.services.markdown_repair import canonicalize_sources_table, repair


class TestRules:
    def test_inserts_space_after_heading_marker(self):
        assert repair("##Title") == "## Title"

    def test_leaves_overlong_heading_run_alone(self):
        assert repair("#######x") == "#######x"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("-item", "- item"),
            ("+item", "+ item"),
            ("*item", "* item"),
            ("  -nested", "  - nested"),
            ("1.First", "1. First"),
        ],
    )
    def test_inserts_space_after_list_marker(self, raw, expected):
        assert repair(raw) == expected

    @pytest.mark.parametrize("text", ["**bold** text", "---", "1.5 liters of water"])
    def test_list_rule_skips_non_list_lines(self, text):
        assert repair(text) == text

    def test_collapses_runs_of_asterisks(self):
        assert repair("***important*** and ****loud****") == "**important** and **loud**"

    def test_rewrites_inline_source_markers(self):
        assert repair("See Source1:the report") == "See \n**Source:** the report"

    def test_normalizes_table_separator_cells(self):
        table = "| a | b |\n|-----|---|\n| 1 | 2 |"
        assert repair(table) == "| a | b |\n| --- | --- |\n| 1 | 2 |"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Alt a photo of a cat", "a photo of a cat"),
            ("Alt' sunset over hills", "sunset over hills"),
            ('Alt" sunset', "sunset"),
            ("Alt Alt sunset", "sunset"),
        ],
    )
    def test_strips_leaked_alt_markers(self, raw, expected):
        assert repair(raw) == expected

    @pytest.mark.parametrize("text", ["Salt water", "Alt Text", "Alternative views"])
    def test_keeps_words_that_only_look_like_alt_markers(self, text):
        assert repair(text) == text

    def test_adds_blank_line_after_heading(self):
        assert repair("# Title\nBody") == "# Title\n\nBody"
        assert repair("# Title\n\nBody") == "# Title\n\nBody"

    def test_adds_blank_line_after_list_before_paragraph(self):
        assert repair("- one\n- two\nAfter") == "- one\n- two\n\nAfter"

    def test_keeps_indented_continuation_attached_to_list_item(self):
        assert repair("- one\n  continued") == "- one\n  continued"

    def test_fixes_heading_and_spacing_together(self):
        assert repair("#Weather\nIt is cold.") == "# Weather\n\nIt is cold."

    def test_no_match_returns_input_unchanged(self):
        text = "Plain paragraph.\n\nAnother one."
        assert repair(text) == text

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_input(self, text):
        assert repair(text) == ""


IDEMPOTENCY_CORPUS = [
    "#Weather\nIt is cold.",
    "*item Source1*: x",
    "-Alt photo here",
    "|--|\n-x\nnext",
    "#Head\n-item\ntext",
    "***x***\n****\n* ***y",
    "Source1***tail",
    "Intro Source12:#- detail\n- a\nb",
    "| A | B |\n|---|---|\n| 1 | 2 |\n- x\n|---|",
    "Alt Alt' Alt\" words",
    "## Sources\n| Number | Source | Description |\n|---------|---------|-------------|\n| 1 | [A](a) | d |",
    "1.One\n2.Two\nDone\n# H\n## H2\n- a\n  b\n\n+c",
    "#", "-", "Sour", "Source1", "| -", "Al", "Alt ", "\n\n", "# \n",
]


@pytest.mark.parametrize("text", IDEMPOTENCY_CORPUS)
def test_repair_is_idempotent(text):
    once = repair(text)
    assert repair(once) == once


def _aggregate(chunks: list[str]) -> str:
    section = Section(query="q")
    section.set_sources([])
    aggregator = SectionAggregator(section)
    for chunk in chunks:
        aggregator.apply(ChannelEvent.answer(chunk))
    return section.response


REPORT = (
    "#Weather Report\nToday is cold.\n-Wind from the north\n-Snow later\nStay warm. "
    "Source1: met office\n|Number|Source|\n|---|---|\n| 1 | x |\n***Note***: Alt a map"
)


@pytest.mark.parametrize("size", [1, 2, 3, 7, 16, len(REPORT)])
def test_incremental_repair_converges_to_full_repair(size):
    chunks = [REPORT[i:i + size] for i in range(0, len(REPORT), size)]
    assert _aggregate(chunks) == repair(REPORT)


class TestCanonicalSourcesTable:
    results = [
        SearchResult(title="Alpha", content="A" * 200, url="https://a.example", snippet="About A"),
        SearchResult(title="Beta", content="B", url="https://b.example", snippet="About B"),
    ]

    def test_replaces_table_under_sources_heading(self):
        text = (
            "# Report\n\nBody\n\n## Sources\n\n"
            "| Number | Source | Description |\n|---|---|---|\n| 1 | wrong | x |\n\nAfter"
        )
        fixed = canonicalize_sources_table(text, self.results)

        assert "wrong" not in fixed
        assert "| 1 | [Alpha](https://a.example) | About A... |" in fixed
        assert "| 2 | [Beta](https://b.example) | About B |" in fixed
        assert fixed.startswith("# Report\n\nBody\n\n## Sources\n\n| Number |")
        assert fixed.endswith("\n\nAfter")

    def test_is_idempotent(self):
        text = "## Sources\n| Number | Source | Description |\n| 1 | wrong | x |"
        once = canonicalize_sources_table(text, self.results)
        assert canonicalize_sources_table(once, self.results) == once

    def test_leaves_text_without_sources_table_alone(self):
        text = "## Sources\n\n1. [Alpha](https://a.example)"
        assert canonicalize_sources_table(text, self.results) == text
