from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from deepsearch.exceptions import SectionClosedError


@dataclass(frozen=True)
class SearchImage:
    url: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "description": self.description}


@dataclass(frozen=True)
class SearchResult:
    title: str
    content: str
    url: str
    snippet: str
    score: float = 0
    image: SearchImage | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "content": self.content,
            "url": self.url,
            "snippet": self.snippet,
            "score": self.score,
        }
        if self.image is not None:
            data["image"] = self.image.to_dict()
        return data


@dataclass(frozen=True)
class SearchResultSet:
    results: tuple[SearchResult, ...] = ()
    answer: str | None = None
    query: str | None = None

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)


class Phase(str, Enum):
    AWAITING_SOURCES = "awaiting_sources"
    AWAITING_COMPLETION = "awaiting_completion"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({Phase.DONE, Phase.FAILED})


@dataclass
class Section:
    """One conversational turn: the query, its sources, reasoning and report.

    ``reasoning`` only grows. ``response`` is replaced on every update with the
    repaired answer so far. Once the phase is Done or Failed the section is
    frozen and every mutator raises ``SectionClosedError``.
    """

    query: str
    index: int = 0
    search_results: list[SearchResult] = field(default_factory=list)
    reasoning: str = ""
    response: str = ""
    error: str | None = None
    phase: Phase = Phase.AWAITING_SOURCES
    aborted: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def is_active(self) -> bool:
        return not self.is_terminal and not self.aborted

    @property
    def is_empty_report(self) -> bool:
        return self.phase == Phase.DONE and not self.response

    def _ensure_open(self) -> None:
        if self.is_terminal:
            raise SectionClosedError(
                f"Section {self.index} is {self.phase.value} and can no longer change"
            )

    def set_sources(self, results: list[SearchResult]) -> None:
        self._ensure_open()
        self.search_results = list(results)
        self.phase = Phase.AWAITING_COMPLETION

    def publish_reasoning(self, reasoning: str) -> None:
        self._ensure_open()
        if not reasoning.startswith(self.reasoning):
            raise ValueError("reasoning may only grow")
        self.reasoning = reasoning
        self.phase = Phase.STREAMING

    def publish_response(self, response: str) -> None:
        self._ensure_open()
        self.response = response
        self.phase = Phase.STREAMING

    def mark_done(self) -> None:
        self._ensure_open()
        self.phase = Phase.DONE

    def mark_failed(self, message: str) -> None:
        self._ensure_open()
        self.error = message
        self.phase = Phase.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "query": self.query,
            "search_results": [r.to_dict() for r in self.search_results],
            "reasoning": self.reasoning,
            "response": self.response,
            "error": self.error,
            "phase": self.phase.value,
            "aborted": self.aborted,
        }


@dataclass
class ConversationState:
    """Append-only list of sections; index is submission order."""

    sections: list[Section] = field(default_factory=list)

    def append(self, query: str) -> Section:
        section = Section(query=query, index=len(self.sections))
        self.sections.append(section)
        return section

    def __getitem__(self, index: int) -> Section:
        return self.sections[index]

    def __len__(self) -> int:
        return len(self.sections)

    def to_list(self) -> list[dict[str, Any]]:
        return [s.to_dict() for s in self.sections]
