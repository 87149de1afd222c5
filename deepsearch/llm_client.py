"""OpenAI-compatible completion client factory (DeepSeek by default)."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from deepsearch.config import settings


def get_client():
    """Get an AsyncOpenAI client pointed at the configured completion API."""
    from openai import AsyncOpenAI

    if not settings.completion_api_key:
        raise RuntimeError("COMPLETION_API_KEY is not configured")

    return AsyncOpenAI(
        api_key=settings.completion_api_key,
        base_url=settings.completion_base_url.strip() or "https://api.deepseek.com",
        timeout=settings.completion_timeout_seconds,
        max_retries=0,
    )


def get_model() -> str:
    """Get the active completion model id."""
    return settings.completion_model


_client = None


def client():
    """Get or create the completion client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


@asynccontextmanager
async def stream_completion(
    messages: list[dict[str, Any]],
    *,
    model: str | None = None,
) -> AsyncIterator[AsyncIterator[bytes]]:
    """Open a streamed chat completion and yield its raw body as bytes.

    The body is the provider's SSE framing (``data: {...}`` lines and a final
    ``data: [DONE]``), left undecoded for the stream demultiplexer.
    """
    active_client = client()
    async with active_client.chat.completions.with_streaming_response.create(
        model=model or get_model(),
        messages=messages,
        max_tokens=settings.completion_max_tokens,
        temperature=settings.completion_temperature,
        stream=True,
    ) as response:
        yield response.iter_bytes()
