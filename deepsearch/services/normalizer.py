"""Validate and default raw search records into SearchResult."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from deepsearch.models.section import SearchImage, SearchResult, SearchResultSet

DEFAULT_TITLE = "Untitled Source"
DEFAULT_CONTENT = "No content available"
DEFAULT_URL = "#"
SNIPPET_CHARS = 150


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _score(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _image(value: Any) -> SearchImage | None:
    if isinstance(value, str) and value:
        return SearchImage(url=value)
    if isinstance(value, Mapping) and value.get("url"):
        description = value.get("description")
        return SearchImage(
            url=_text(value["url"]),
            description=_text(description) if description else None,
        )
    return None


def normalize_record(raw: Any) -> SearchResult:
    """Substitute defaults for missing fields of one raw record."""
    record: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    raw_content = _text(record.get("content"))
    return SearchResult(
        title=_text(record.get("title")) or DEFAULT_TITLE,
        content=raw_content or DEFAULT_CONTENT,
        url=_text(record.get("url")) or DEFAULT_URL,
        snippet=_text(record.get("snippet")) or raw_content[:SNIPPET_CHARS],
        score=_score(record.get("score")),
        image=_image(record.get("image")),
    )


def normalize(raw: Any) -> list[SearchResult]:
    """Normalize a list of raw provider records. Never raises.

    Anything that is not a list (``None``, a dict, a string) yields ``[]``.
    """
    if not isinstance(raw, (list, tuple)):
        return []
    return [normalize_record(item) for item in raw]


def normalize_result_set(payload: Any) -> SearchResultSet:
    """Normalize a full provider payload ``{results, images, answer, query}``.

    ``images[i]`` becomes the image of ``results[i]`` when the record has none.
    """
    if not isinstance(payload, Mapping):
        return SearchResultSet()

    results = normalize(payload.get("results"))
    images = payload.get("images")
    if isinstance(images, (list, tuple)) and images:
        merged: list[SearchResult] = []
        for index, result in enumerate(results):
            image = _image(images[index]) if index < len(images) else None
            if result.image is None and image is not None:
                result = SearchResult(
                    title=result.title,
                    content=result.content,
                    url=result.url,
                    snippet=result.snippet,
                    score=result.score,
                    image=image,
                )
            merged.append(result)
        results = merged

    answer = payload.get("answer")
    query = payload.get("query")
    return SearchResultSet(
        results=tuple(results),
        answer=_text(answer) if answer else None,
        query=_text(query) if query else None,
    )
