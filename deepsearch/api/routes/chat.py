from __future__ import annotations

from contextlib import AsyncExitStack

import openai
from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse

from deepsearch import llm_client
from deepsearch.config import settings
from deepsearch.models.schemas import ChatRequest
from deepsearch.services import logger as log_service
from deepsearch.services.relay import enhance_messages, relay_stream

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("")
async def chat(request: ChatRequest):
    """Relay a streamed completion as newline-delimited JSON records."""
    messages = enhance_messages([m.model_dump() for m in request.messages])

    stack = AsyncExitStack()
    try:
        chunks = await stack.enter_async_context(llm_client.stream_completion(messages))
    except Exception as e:
        await stack.aclose()
        message = e.message if isinstance(e, openai.APIStatusError) else str(e)
        log_service.log_llm_call(
            model=llm_client.get_model(),
            caller="relay.chat",
            status="failed",
            error=message,
        )
        return JSONResponse(
            {"error": message or "Failed to process request"},
            status_code=500,
        )

    async def body():
        try:
            async for line in relay_stream(chunks, repair_deltas=settings.relay_repair_deltas):
                yield line
        finally:
            await stack.aclose()

    return StreamingResponse(
        body(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
