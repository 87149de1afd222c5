from __future__ import annotations

import json as _json

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from deepsearch.api.deps import ConversationRegistry, get_registry
from deepsearch.exceptions import InvalidQueryError
from deepsearch.models.schemas import ResearchRequest, SuggestionInfo, SuggestionsResponse
from deepsearch.services import logger as log_service
from deepsearch.services import streaming
from deepsearch.services.context import apply_suggestion, suggestions

router = APIRouter(prefix="/api", tags=["research"])


@router.post("/research")
async def research(
    request: ResearchRequest,
    registry: ConversationRegistry = Depends(get_registry),
):
    """Submit a query and stream its section as SSE events until it settles."""
    query = request.query
    if request.suggestion:
        try:
            query = apply_suggestion(request.suggestion, query)
        except ValueError as e:
            return JSONResponse({"error": str(e)}, status_code=400)

    conversation = registry.get_or_create(request.conversation_id)
    queue = conversation.subscribe()
    try:
        section = conversation.submit(query)
    except InvalidQueryError as e:
        conversation.unsubscribe(queue)
        return JSONResponse({"error": str(e)}, status_code=400)

    log_service.log_event(
        event_type="research_started",
        message="Research started",
        conversation_id=request.conversation_id,
        section_index=section.index,
        query=section.query[:100],
    )

    async def event_generator():
        try:
            while True:
                event = await queue.get()
                if event.data.get("index") != section.index:
                    continue
                yield {
                    "event": event.event.value,
                    "data": _json.dumps(event.data),
                }
                if event.is_terminal:
                    break
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
                conversation_id=request.conversation_id,
            )
            error_event = streaming.error("Research stream failed unexpectedly.", index=section.index)
            yield {
                "event": error_event.event.value,
                "data": _json.dumps(error_event.data),
            }
        finally:
            conversation.unsubscribe(queue)

    return EventSourceResponse(event_generator())


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    registry: ConversationRegistry = Depends(get_registry),
):
    conversation = registry.get(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {
        "conversation_id": conversation_id,
        "in_flight": conversation.in_flight,
        "sections": conversation.state.to_list(),
    }


@router.get("/suggestions", response_model=SuggestionsResponse)
async def list_suggestions():
    return SuggestionsResponse(
        suggestions=[SuggestionInfo(**item) for item in suggestions()]
    )
