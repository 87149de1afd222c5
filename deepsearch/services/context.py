"""Build the grounding prompt sent to the completion provider."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from deepsearch.models.section import SearchResult, SearchResultSet
from deepsearch.services.prompt_store import prompt_list, render_prompt

DESCRIPTION_CHARS = 150


@dataclass(frozen=True)
class ComposedPrompt:
    prompt_text: str
    sources_table: str


def _cell(value: str) -> str:
    return " ".join(value.split()).replace("|", "\\|")


def source_description(result: SearchResult) -> str:
    description = result.snippet or result.content[:DESCRIPTION_CHARS]
    if len(result.content) > DESCRIPTION_CHARS:
        description += "..."
    return description


def source_row(number: int, result: SearchResult) -> str:
    return (
        f"| {number} | [{_cell(result.title)}]({result.url}) "
        f"| {_cell(source_description(result))} |"
    )


def build_sources_table(results: SearchResultSet | list[SearchResult]) -> str:
    """Markdown sources table, one row per result numbered from 1."""
    rows = [source_row(number, result) for number, result in enumerate(results, 1)]
    return render_prompt("composer.sources_table_header") + "\n".join(rows)


def build_search_context(results: SearchResultSet | list[SearchResult]) -> str:
    entries = [
        render_prompt(
            "composer.context_entry",
            number=number,
            title=result.title,
            content=result.content,
            url=result.url,
        )
        for number, result in enumerate(results, 1)
    ]
    return "\n\n".join(entries)


def compose(query: str, results: SearchResultSet) -> ComposedPrompt:
    """Compose the final user prompt. Output is a pure function of the inputs."""
    answer_block = (
        render_prompt("composer.answer_block", answer=results.answer)
        if results.answer
        else ""
    )
    sources_table = build_sources_table(results)
    prompt_text = render_prompt(
        "composer.report_instruction",
        answer_block=answer_block,
        search_context=build_search_context(results),
        query=query,
        sources_table=sources_table,
    )
    return ComposedPrompt(prompt_text=prompt_text, sources_table=sources_table)


def build_messages(query: str, composed: ComposedPrompt) -> list[dict[str, str]]:
    """The conversation sent upstream; the composed prompt is the last user turn."""
    return [
        {"role": "user", "content": query},
        {"role": "assistant", "content": render_prompt("composer.context_ack")},
        {"role": "user", "content": composed.prompt_text},
    ]


def suggestions() -> list[dict[str, Any]]:
    return prompt_list("suggestions")


def apply_suggestion(label: str, text: str) -> str:
    """Prefix ``text`` with the named suggestion preset."""
    for suggestion in suggestions():
        if suggestion["label"].lower() == label.lower():
            return f"{suggestion['prefix']}{text}"
    raise ValueError(f"Unknown suggestion: {label}")
