from __future__ import annotations

from loguru import logger

from deepsearch.models.channel import Channel, ChannelEvent
from deepsearch.models.events import SSEEvent
from deepsearch.models.section import Section
from deepsearch.services import streaming
from deepsearch.services.markdown_repair import canonicalize_sources_table, repair


class SectionAggregator:
    """Single owner of one section's reasoning and response text.

    The answer accumulator holds the raw model text; every Answer event
    re-repairs the whole accumulation so rules that look across chunk edges
    see the full context. Events arriving after the section was closed or
    abandoned are dropped.
    """

    def __init__(self, section: Section, *, canonical_sources_table: bool = False):
        self.section = section
        self.canonical_sources_table = canonical_sources_table
        self._reasoning_acc = ""
        self._answer_acc = ""
        self.answer_events = 0
        self.reasoning_events = 0
        self.abandoned = False

    @property
    def raw_answer(self) -> str:
        return self._answer_acc

    @property
    def accepts_events(self) -> bool:
        return not (self.abandoned or self.section.aborted or self.section.is_terminal)

    def _render(self) -> str:
        text = repair(self._answer_acc)
        if self.canonical_sources_table and self.section.search_results:
            text = canonicalize_sources_table(text, self.section.search_results)
        return text

    def apply(self, event: ChannelEvent) -> SSEEvent | None:
        """Apply one channel event and return the update to publish, if any."""
        if not self.accepts_events:
            logger.debug(f"Dropping {event.kind.value} event for closed section {self.section.index}")
            return None

        if event.kind == Channel.REASONING:
            self._reasoning_acc += event.text
            self.reasoning_events += 1
            self.section.publish_reasoning(self._reasoning_acc)
            return streaming.reasoning_updated(self.section)

        if event.kind == Channel.ANSWER:
            self._answer_acc += event.text
            self.answer_events += 1
            self.section.publish_response(self._render())
            return streaming.response_updated(self.section)

        logger.debug(f"Ignoring unparseable event for section {self.section.index}")
        return None

    def finish(self) -> SSEEvent | None:
        if not self.accepts_events:
            return None
        self.section.mark_done()
        if self.answer_events == 0:
            logger.warning(
                f"Section {self.section.index} completed without any answer text "
                f"(query={self.section.query[:80]!r})"
            )
        return streaming.section_done(self.section)

    def fail(self, message: str) -> SSEEvent | None:
        """Mark the section failed, keeping whatever text already arrived."""
        if not self.accepts_events:
            return None
        self.section.mark_failed(message)
        return streaming.section_failed(self.section)

    def abandon(self) -> None:
        self.abandoned = True
        self.section.aborted = True
