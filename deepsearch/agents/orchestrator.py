from __future__ import annotations

import asyncio
import time
from typing import AsyncGenerator

from loguru import logger

from deepsearch.agents.clients import CompletionClient, SearchClient, build_clients
from deepsearch.config import settings
from deepsearch.exceptions import (
    CompletionFailedError,
    InvalidQueryError,
    NoResultsError,
    SearchFailedError,
)
from deepsearch.llm_client import get_model
from deepsearch.models.events import SSEEvent
from deepsearch.models.section import ConversationState, Phase, Section
from deepsearch.services import logger as log_service
from deepsearch.services import streaming
from deepsearch.services.aggregator import SectionAggregator
from deepsearch.services.context import build_messages, compose
from deepsearch.services.demux import StreamDemultiplexer

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


def validate_query(query: str | None) -> str:
    text = (query or "").strip()
    if not text:
        raise InvalidQueryError("Query must not be empty")
    return text


class QueryOrchestrator:
    """Runs one query end to end.

    Flow:
      1. Search and normalize results (fail fast on zero results)
      2. Compose the grounding prompt
      3. Stream the completion through the demultiplexer
      4. Feed channel events to the section aggregator

    ``run`` is an async generator of SSE events describing the section as it
    grows. Search and completion failures end the section as Failed with the
    text gathered so far left intact. Cancellation marks the section aborted
    and is re-raised; it never fails the section.
    """

    def __init__(
        self,
        search_client: SearchClient | None = None,
        completion_client: CompletionClient | None = None,
        *,
        buffer_partial_lines: bool | None = None,
        canonical_sources_table: bool | None = None,
    ):
        if search_client is None or completion_client is None:
            default_search, default_completion = build_clients()
            search_client = search_client or default_search
            completion_client = completion_client or default_completion
        self.search_client = search_client
        self.completion_client = completion_client
        self.buffer_partial_lines = (
            settings.stream_buffer_partial_lines
            if buffer_partial_lines is None
            else buffer_partial_lines
        )
        self.canonical_sources_table = (
            settings.canonical_sources_table
            if canonical_sources_table is None
            else canonical_sources_table
        )

    async def run(self, section: Section) -> AsyncGenerator[SSEEvent, None]:
        query = validate_query(section.query)
        aggregator = SectionAggregator(
            section, canonical_sources_table=self.canonical_sources_table
        )

        try:
            yield streaming.section_created(section)

            log_service.log_pipeline_step(section.index, "search", "started", {"query": query[:100]})
            try:
                results = await self.search_client.search(query)
                if not results.results:
                    raise NoResultsError()
            except (SearchFailedError, NoResultsError) as e:
                log_service.log_pipeline_step(section.index, "search", "failed", {"error": str(e)})
                failed = aggregator.fail(str(e))
                if failed is not None:
                    yield failed
                return

            section.set_sources(list(results.results))
            log_service.log_pipeline_step(
                section.index, "search", "completed", {"results": len(results.results)}
            )
            yield streaming.sources_ready(section)

            composed = compose(query, results)
            messages = build_messages(query, composed)
            demux = StreamDemultiplexer(buffer_partial_lines=self.buffer_partial_lines)

            t0 = time.monotonic()
            try:
                async with self.completion_client.stream(messages) as chunks:
                    async for event in demux.events(chunks):
                        update = aggregator.apply(event)
                        if update is not None:
                            yield update
            except CompletionFailedError as e:
                elapsed_ms = int((time.monotonic() - t0) * 1000)
                log_service.log_llm_call(
                    model=get_model(),
                    caller="orchestrator.completion",
                    duration_ms=elapsed_ms,
                    status="failed",
                    error=str(e),
                )
                failed = aggregator.fail(str(e))
                if failed is not None:
                    yield failed
                return

            elapsed_ms = int((time.monotonic() - t0) * 1000)
            log_service.log_llm_call(
                model=get_model(),
                caller="orchestrator.completion",
                duration_ms=elapsed_ms,
            )
            done = aggregator.finish()
            if done is not None:
                logger.info(
                    f"Section {section.index} complete: {aggregator.answer_events} answer chunks, "
                    f"{aggregator.reasoning_events} reasoning chunks, "
                    f"{demux.malformed_lines} malformed lines"
                )
                yield done
        except (asyncio.CancelledError, GeneratorExit):
            aggregator.abandon()
            log_service.log_pipeline_step(section.index, "request", "aborted")
            raise
        except Exception as e:
            logger.exception(f"Unexpected pipeline error for section {section.index}: {e}")
            failed = aggregator.fail(UNEXPECTED_ERROR_MESSAGE)
            if failed is not None:
                yield failed


class Conversation:
    """Ordered sections plus at most one in-flight request.

    Submitting a query cancels the request before it; the cancelled section
    keeps its phase and text and is flagged aborted. Observers receive every
    event through their own queue and never touch the sections.
    """

    def __init__(self, orchestrator: QueryOrchestrator | None = None):
        self.orchestrator = orchestrator or QueryOrchestrator()
        self.state = ConversationState()
        self._task: asyncio.Task | None = None
        self._active: Section | None = None
        self._subscribers: list[asyncio.Queue[SSEEvent]] = []

    @property
    def sections(self) -> list[Section]:
        return self.state.sections

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self) -> asyncio.Queue[SSEEvent]:
        queue: asyncio.Queue[SSEEvent] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[SSEEvent]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def _publish(self, event: SSEEvent) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(event)

    def submit(self, query: str) -> Section:
        """Start a new request; must be called from a running event loop."""
        text = validate_query(query)
        self.cancel()
        section = self.state.append(text)
        self._active = section
        self._task = asyncio.get_running_loop().create_task(self._drive(section))
        return section

    async def _drive(self, section: Section) -> None:
        async for event in self.orchestrator.run(section):
            self._publish(event)

    def cancel(self) -> Section | None:
        """Abort the in-flight request, if any, and return its section."""
        if not self.in_flight or self._active is None:
            return None
        section = self._active
        self._task.cancel()
        section.aborted = True
        log_service.log_event(
            event_type="request_aborted",
            message="In-flight request cancelled",
            section_index=section.index,
        )
        self._publish(streaming.section_aborted(section))
        return section

    async def wait(self) -> Section | None:
        """Wait for the in-flight request (if any) to settle."""
        task, section = self._task, self._active
        if task is not None:
            await asyncio.wait([task])
        return section

    def retry(self, index: int) -> Section:
        """Resubmit the query text of a failed or aborted section."""
        section = self.state[index]
        if section.phase != Phase.FAILED and not section.aborted:
            raise ValueError(f"Section {index} did not fail; nothing to retry")
        return self.submit(section.query)
