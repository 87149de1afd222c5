"""Split a completion byte stream into reasoning and answer channel events."""
from __future__ import annotations

import codecs
import json
from typing import Any, AsyncIterable, AsyncIterator, Iterable

from loguru import logger

from deepsearch.models.channel import Channel, ChannelEvent

DONE_SENTINEL = "data: [DONE]"
DATA_PREFIX = "data: "


def strip_framing(line: str) -> str | None:
    """Return the JSON payload of one stream line, or None if it carries none."""
    line = line.strip()
    if not line or line == DONE_SENTINEL:
        return None
    if line.startswith(DATA_PREFIX):
        line = line[len(DATA_PREFIX):]
    return line


def parse_record(payload: str) -> dict[str, Any] | None:
    try:
        record = json.loads(payload)
    except (json.JSONDecodeError, ValueError):
        return None
    return record if isinstance(record, dict) else None


def first_delta(record: dict[str, Any]) -> dict[str, Any] | None:
    choices = record.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta")
    return delta if isinstance(delta, dict) else None


def classify_record(record: dict[str, Any]) -> ChannelEvent | None:
    delta = first_delta(record)
    if delta is None:
        return None
    reasoning = delta.get("reasoning_content")
    if isinstance(reasoning, str) and reasoning:
        return ChannelEvent.reasoning(reasoning)
    content = delta.get("content")
    if isinstance(content, str) and content:
        return ChannelEvent.answer(content)
    return None


def classify_line(line: str) -> ChannelEvent | None:
    """Classify one stream line.

    Returns None for blank lines, the ``[DONE]`` sentinel and records without
    channel text, and an UNPARSEABLE event when the payload is not JSON.
    """
    payload = strip_framing(line)
    if payload is None:
        return None
    record = parse_record(payload)
    if record is None:
        return ChannelEvent.unparseable(payload)
    return classify_record(record)


class StreamDemultiplexer:
    """Turns upstream chunks into ChannelEvents.

    Each chunk is decoded and split on line breaks on its own; a line cut in
    half by a chunk boundary fails to parse and is skipped. With
    ``buffer_partial_lines`` the unterminated tail of a chunk is instead held
    back and joined with the next chunk, and flushed when the stream ends.
    """

    def __init__(self, encoding: str = "utf-8", *, buffer_partial_lines: bool = False):
        self.encoding = encoding
        self.buffer_partial_lines = buffer_partial_lines
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""
        self.answer_events = 0
        self.reasoning_events = 0
        self.malformed_lines = 0

    def _lines(self, text: str) -> list[str]:
        if not self.buffer_partial_lines:
            return text.split("\n")
        text = self._pending + text
        lines = text.split("\n")
        self._pending = lines.pop()
        return lines

    def _classify(self, lines: Iterable[str]) -> list[ChannelEvent]:
        events: list[ChannelEvent] = []
        for line in lines:
            event = classify_line(line)
            if event is None:
                continue
            if event.kind == Channel.UNPARSEABLE:
                self.malformed_lines += 1
                logger.debug(f"Skipping malformed stream line: {event.text[:120]!r}")
                continue
            if event.kind == Channel.REASONING:
                self.reasoning_events += 1
            else:
                self.answer_events += 1
            events.append(event)
        return events

    def feed(self, chunk: bytes | str) -> list[ChannelEvent]:
        """Process one chunk and return the events it completes."""
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        return self._classify(self._lines(text))

    def close(self) -> list[ChannelEvent]:
        """Flush decoder and buffered tail at the end of the stream."""
        tail = self._decoder.decode(b"", final=True)
        if self.buffer_partial_lines:
            tail = self._pending + tail
            self._pending = ""
        events = self._classify(tail.split("\n")) if tail else []
        if self.malformed_lines:
            logger.warning(f"Skipped {self.malformed_lines} malformed line(s) in completion stream")
        return events

    async def events(
        self, chunks: AsyncIterable[bytes | str]
    ) -> AsyncIterator[ChannelEvent]:
        """Drive the demultiplexer over a whole stream."""
        async for chunk in chunks:
            for event in self.feed(chunk):
                yield event
        for event in self.close():
            yield event


async def demultiplex(
    chunks: AsyncIterable[bytes | str],
    *,
    encoding: str = "utf-8",
    buffer_partial_lines: bool = False,
) -> AsyncIterator[ChannelEvent]:
    demux = StreamDemultiplexer(encoding, buffer_partial_lines=buffer_partial_lines)
    async for event in demux.events(chunks):
        yield event
