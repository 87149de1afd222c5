"""Server-side relay: re-emit an upstream completion stream as clean JSON lines."""
from __future__ import annotations

import codecs
import json
from typing import Any, AsyncIterable, AsyncIterator, Mapping

from loguru import logger

from deepsearch.services.demux import first_delta, parse_record, strip_framing
from deepsearch.services.markdown_repair import repair
from deepsearch.services.prompt_store import render_prompt


def enhance_messages(messages: list[Mapping[str, Any]]) -> list[dict[str, str]]:
    """Prepend the formatting instructions and remind every user turn of them."""
    enhanced = [{"role": "system", "content": render_prompt("relay.system_instructions")}]
    suffix = render_prompt("relay.user_suffix")
    for message in messages:
        role = str(message.get("role", "user"))
        content = str(message.get("content", ""))
        if role == "user":
            content = f"{content}{suffix}"
        enhanced.append({"role": role, "content": content})
    return enhanced


def transform_line(line: str, *, repair_deltas: bool = True) -> bytes | None:
    """Turn one upstream line into one NDJSON line, or None to drop it."""
    payload = strip_framing(line)
    if payload is None:
        return None
    record = parse_record(payload)
    if record is None:
        logger.debug(f"Relay skipping unparseable line: {payload[:120]!r}")
        return None

    if repair_deltas:
        delta = first_delta(record)
        if delta is not None and isinstance(delta.get("content"), str) and delta["content"]:
            delta["content"] = repair(delta["content"])

    return (json.dumps(record) + "\n").encode("utf-8")


async def relay_stream(
    chunks: AsyncIterable[bytes],
    *,
    repair_deltas: bool = True,
    encoding: str = "utf-8",
) -> AsyncIterator[bytes]:
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    async for chunk in chunks:
        for line in decoder.decode(chunk).split("\n"):
            out = transform_line(line, repair_deltas=repair_deltas)
            if out is not None:
                yield out
    for line in decoder.decode(b"", final=True).split("\n"):
        out = transform_line(line, repair_deltas=repair_deltas)
        if out is not None:
            yield out
