"""Best-effort cosmetic repair of model-generated Markdown.

The rules are line/pattern rewrites, not a Markdown parse. They are applied in
order and the whole transform is idempotent, so it can run on every streamed
prefix of a report as well as on the final text.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from deepsearch.models.section import SearchResult
from deepsearch.services.context import source_row


@dataclass(frozen=True)
class RepairRule:
    name: str
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


_LIST_ITEM = r"[ \t]*(?:[*+\-]|\d+\.)[ \t]+\S"

RULES: tuple[RepairRule, ...] = (
    # "##Title" -> "## Title"
    RepairRule("heading_space", re.compile(r"^(#{1,6})(?=[^#\s])", re.M), r"\1 "),
    # "-item" / "+item" -> "- item"; "--" and "---" are left alone
    RepairRule("bullet_space", re.compile(r"^([ \t]*)([-+])(?=[^\s\-+])", re.M), r"\1\2 "),
    # "*item" -> "* item"; "**bold**" is left alone
    RepairRule("star_bullet_space", re.compile(r"^([ \t]*)\*(?=[^\s*])", re.M), r"\1* "),
    # "1.item" -> "1. item"; "1.5" is left alone
    RepairRule("ordered_space", re.compile(r"^([ \t]*)(\d+\.)(?=[^\s\d.])", re.M), r"\1\2 "),
    RepairRule("excess_asterisks", re.compile(r"\*{3,}"), "**"),
    RepairRule("source_marker", re.compile(r"Source\d+[:#\-*]+"), "\n**Source:** "),
    RepairRule("table_separator", re.compile(r"(?<=\|)[ \t]*-+[ \t]*(?=\|)"), " --- "),
    RepairRule("alt_artifact", re.compile(r"\b(?:Alt['\"\u2019]?[ \t]+)+(?=[a-z])"), ""),
    RepairRule(
        "blank_after_heading",
        re.compile(r"^(#{1,6}[ \t][^\n]*)\n(?=[^\n])", re.M),
        "\\1\n\n",
    ),
    RepairRule(
        "blank_after_list_item",
        re.compile(
            rf"^({_LIST_ITEM}[^\n]*)\n(?=(?![*+\-][ \t]|\d+\.[ \t])[^\s])",
            re.M,
        ),
        "\\1\n\n",
    ),
)


def repair(text: str) -> str:
    """Apply every repair rule in order. Never raises; no match means no change."""
    if not text:
        return text or ""
    if not isinstance(text, str):
        text = str(text)
    for rule in RULES:
        text = rule.apply(text)
    return text


_SOURCES_HEADING = re.compile(r"^#{1,6}[ \t]+Sources\b[^\n]*$", re.M | re.I)
_TABLE_HEADER = "| Number | Source | Description |\n| --- | --- | --- |"


def canonical_sources_table(results: Iterable[SearchResult]) -> str:
    rows = [source_row(number, result) for number, result in enumerate(results, 1)]
    return "\n".join([_TABLE_HEADER, *rows])


def canonicalize_sources_table(text: str, results: Iterable[SearchResult]) -> str:
    """Replace the table under the last Sources heading with the canonical one.

    Only a table whose header mentions ``Number`` is replaced, and only blank
    lines may sit between the heading and the table.
    """
    headings = list(_SOURCES_HEADING.finditer(text or ""))
    if not headings:
        return text

    head_end = headings[-1].end()
    lines = text[head_end:].split("\n")
    # lines[0] is the (empty) remainder of the heading line
    start = 1
    while start < len(lines) and not lines[start].strip():
        start += 1
    if start >= len(lines) or not lines[start].lstrip().startswith("|"):
        return text
    if "Number" not in lines[start]:
        return text

    end = start
    while end < len(lines) and lines[end].lstrip().startswith("|"):
        end += 1

    replaced = lines[:start] + canonical_sources_table(results).split("\n") + lines[end:]
    return text[:head_end] + "\n".join(replaced)
