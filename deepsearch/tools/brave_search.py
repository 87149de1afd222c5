from __future__ import annotations

from typing import Any

import httpx

from deepsearch.config import settings

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


async def search(
    query: str,
    *,
    max_results: int = 10,
) -> dict[str, Any]:
    """Execute a Brave web search and map it onto the Tavily payload shape."""
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params={"q": query, "count": max_results},
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    raw_results = payload.get("web", {}).get("results", [])
    total = max(len(raw_results), 1)
    mapped: list[dict[str, Any]] = []
    for idx, item in enumerate(raw_results):
        snippets = item.get("extra_snippets", []) or []
        description = item.get("description", "") or ""
        # Brave does not expose a relevance score; rank order stands in for it.
        mapped.append(
            {
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "content": description.strip() or " ".join(snippets).strip(),
                "score": max(0.0, 1.0 - (idx / total)),
            }
        )
    return {"results": mapped, "images": [], "answer": None, "query": query}
