"""Search and completion collaborators used by the query orchestrator.

Two flavours of each: provider-backed clients call Tavily/Brave and the
completion API in-process; HTTP clients talk to a running deepsearch server
through its ``/api/search`` and ``/api/chat`` routes.
"""
from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Protocol

import httpx
import openai

from deepsearch import llm_client
from deepsearch.config import settings
from deepsearch.exceptions import CompletionFailedError, SearchFailedError
from deepsearch.models.section import SearchResultSet
from deepsearch.services.normalizer import normalize_result_set
from deepsearch.services.relay import enhance_messages
from deepsearch.tools import search_provider

SEARCH_FAILED_MESSAGE = "Failed to fetch search results"
COMPLETION_FAILED_MESSAGE = "Failed to generate report. Please try again."


class SearchClient(Protocol):
    async def search(self, query: str) -> SearchResultSet: ...


class CompletionClient(Protocol):
    def stream(
        self, messages: list[dict[str, str]]
    ) -> AsyncContextManager[AsyncIterator[bytes]]: ...


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or default
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if error:
            return str(error)
    return default


async def _completion_chunks(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    try:
        async for chunk in chunks:
            yield chunk
    except (httpx.HTTPError, openai.APIError) as e:
        raise CompletionFailedError(str(e) or "Completion stream interrupted") from e


class ProviderSearchClient:
    async def search(self, query: str) -> SearchResultSet:
        try:
            response = await search_provider.search(
                query,
                include_images=True,
                include_image_descriptions=True,
            )
        except Exception as e:
            raise SearchFailedError(str(e) or SEARCH_FAILED_MESSAGE) from e
        return normalize_result_set(response.payload)


class ProviderCompletionClient:
    def __init__(self, model: str | None = None):
        self.model = model

    @asynccontextmanager
    async def stream(self, messages: list[dict[str, str]]) -> AsyncIterator[AsyncIterator[bytes]]:
        async with AsyncExitStack() as stack:
            try:
                body = await stack.enter_async_context(
                    llm_client.stream_completion(enhance_messages(messages), model=self.model)
                )
            except openai.APIStatusError as e:
                raise CompletionFailedError(e.message or COMPLETION_FAILED_MESSAGE) from e
            except (openai.APIError, httpx.HTTPError, RuntimeError) as e:
                raise CompletionFailedError(str(e) or COMPLETION_FAILED_MESSAGE) from e
            yield _completion_chunks(body)


class HttpSearchClient:
    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout

    async def search(self, query: str) -> SearchResultSet:
        request_body = {
            "query": query,
            "includeImages": True,
            "includeImageDescriptions": True,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, transport=self.transport, timeout=self.timeout
            ) as client:
                response = await client.post("/api/search", json=request_body)
        except httpx.HTTPError as e:
            raise SearchFailedError(str(e) or SEARCH_FAILED_MESSAGE) from e

        if response.is_error:
            raise SearchFailedError(_error_message(response, SEARCH_FAILED_MESSAGE))
        try:
            payload: Any = response.json()
        except ValueError as e:
            raise SearchFailedError("Search returned an unreadable response") from e
        return normalize_result_set(payload)


class HttpCompletionClient:
    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.completion_timeout_seconds

    @asynccontextmanager
    async def stream(self, messages: list[dict[str, str]]) -> AsyncIterator[AsyncIterator[bytes]]:
        async with AsyncExitStack() as stack:
            try:
                client = await stack.enter_async_context(
                    httpx.AsyncClient(
                        base_url=self.base_url, transport=self.transport, timeout=self.timeout
                    )
                )
                response = await stack.enter_async_context(
                    client.stream("POST", "/api/chat", json={"messages": messages})
                )
                if response.is_error:
                    await response.aread()
            except httpx.HTTPError as e:
                raise CompletionFailedError(str(e) or COMPLETION_FAILED_MESSAGE) from e

            if response.is_error:
                raise CompletionFailedError(_error_message(response, COMPLETION_FAILED_MESSAGE))
            yield _completion_chunks(response.aiter_bytes())


def build_clients(server_url: str | None = None) -> tuple[SearchClient, CompletionClient]:
    """Pick HTTP clients when a server URL is configured, providers otherwise."""
    url = server_url if server_url is not None else settings.deepsearch_server_url
    if url:
        return HttpSearchClient(url), HttpCompletionClient(url)
    return ProviderSearchClient(), ProviderCompletionClient()
