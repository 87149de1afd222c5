from __future__ import annotations

from typing import Any

from tavily import AsyncTavilyClient

from deepsearch.config import settings


async def search(
    query: str,
    *,
    search_depth: str = "advanced",
    max_results: int = 10,
    include_images: bool = True,
    include_image_descriptions: bool = True,
    include_answer: bool = True,
) -> dict[str, Any]:
    """Execute a Tavily web search and return the raw provider payload."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    response = await client.search(
        query=query,
        search_depth=search_depth,
        max_results=max_results,
        include_images=include_images,
        include_image_descriptions=include_images and include_image_descriptions,
        include_answer=include_answer,
    )

    return {
        "results": response.get("results", []) or [],
        "images": response.get("images", []) or [],
        "answer": response.get("answer"),
        "query": response.get("query", query),
    }
