from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any

import pytest

from deepsearch.models.section import SearchResult, SearchResultSet


def sse_record(**delta: Any) -> bytes:
    """One SSE-framed completion chunk carrying ``delta``."""
    return f"data: {json.dumps({'choices': [{'delta': delta}]})}\n\n".encode("utf-8")


DONE = b"data: [DONE]\n\n"


def make_results(count: int = 2, answer: str | None = None) -> SearchResultSet:
    return SearchResultSet(
        results=tuple(
            SearchResult(
                title=f"Title {i}",
                content=f"Content {i}",
                url=f"https://example.com/{i}",
                snippet=f"Snippet {i}",
                score=1.0 - i / 10,
            )
            for i in range(1, count + 1)
        ),
        answer=answer,
        query="q",
    )


class FakeSearchClient:
    def __init__(self, results: SearchResultSet | None = None, error: Exception | None = None):
        self.results = results if results is not None else make_results()
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str) -> SearchResultSet:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.results


class FakeCompletionClient:
    """Replays byte chunks; can fail on open or after the chunks."""

    def __init__(
        self,
        chunks: list[bytes] | None = None,
        *,
        open_error: Exception | None = None,
        stream_error: Exception | None = None,
    ):
        self.chunks = chunks or []
        self.open_error = open_error
        self.stream_error = stream_error
        self.calls: list[list[dict[str, str]]] = []

    @asynccontextmanager
    async def stream(self, messages):
        self.calls.append(messages)
        if self.open_error is not None:
            raise self.open_error

        async def body():
            for chunk in self.chunks:
                await asyncio.sleep(0)
                yield chunk
            if self.stream_error is not None:
                raise self.stream_error

        yield body()


@pytest.fixture
def weather_chunks() -> list[bytes]:
    return [
        sse_record(reasoning_content="Let me check..."),
        sse_record(content="#Weather\n"),
        sse_record(content="It is cold."),
        DONE,
    ]
