from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from deepsearch.config import settings
from deepsearch.tools import brave_search, tavily_search


@dataclass
class SearchResponse:
    payload: dict[str, Any]
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


async def _tavily(query: str, max_results: int, include_images: bool, include_image_descriptions: bool) -> dict[str, Any]:
    return await tavily_search.search(
        query=query,
        search_depth=settings.search_depth,
        max_results=max_results,
        include_images=include_images,
        include_image_descriptions=include_image_descriptions,
        include_answer=settings.search_include_answer,
    )


async def search(
    query: str,
    *,
    max_results: int | None = None,
    include_images: bool = True,
    include_image_descriptions: bool = True,
) -> SearchResponse:
    provider = settings.search_provider.lower().strip()
    use_fallback = settings.search_fallback_to_tavily
    limit = max_results or settings.search_max_results

    if provider == "tavily":
        payload = await _tavily(query, limit, include_images, include_image_descriptions)
        return SearchResponse(payload=payload, provider="tavily")

    if provider == "brave":
        try:
            payload = await brave_search.search(query=query, max_results=limit)
            if payload["results"] or not use_fallback:
                return SearchResponse(payload=payload, provider="brave")

            fallback_reason = "brave returned zero results"
        except Exception as e:
            if not use_fallback:
                raise
            fallback_reason = str(e)

        logger.warning(f"Falling back to tavily search: {fallback_reason}")
        payload = await _tavily(query, limit, include_images, include_image_descriptions)
        return SearchResponse(
            payload=payload,
            provider="tavily",
            fallback_from="brave",
            fallback_reason=fallback_reason,
        )

    raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")
