from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from deepsearch.models.schemas import SearchRequest
from deepsearch.services import logger as log_service
from deepsearch.tools import search_provider

router = APIRouter(prefix="/api/search", tags=["search"])


@router.post("")
async def search(request: SearchRequest):
    """Run a web search and return the provider payload unchanged."""
    query = request.query.strip()
    if not query:
        return JSONResponse({"error": "Query is required"}, status_code=400)

    try:
        response = await search_provider.search(
            query,
            include_images=request.include_images,
            include_image_descriptions=request.include_image_descriptions,
        )
    except Exception as e:
        log_service.log_event(
            event_type="search_error",
            message="Search provider call failed",
            error=str(e),
            query=query[:100],
        )
        return JSONResponse(
            {"error": str(e) or "Failed to fetch search results"},
            status_code=500,
        )

    if response.fallback_from:
        log_service.log_event(
            event_type="search_fallback",
            message="Search served by fallback provider",
            provider=response.provider,
            fallback_from=response.fallback_from,
            reason=response.fallback_reason,
        )
    return response.payload
