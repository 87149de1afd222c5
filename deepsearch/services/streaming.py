from __future__ import annotations

from typing import Any

from deepsearch.models.events import EventType, SSEEvent
from deepsearch.models.section import Section


def section_created(section: Section) -> SSEEvent:
    return SSEEvent(event=EventType.SECTION_CREATED, data=section.to_dict())


def sources_ready(section: Section) -> SSEEvent:
    return SSEEvent(event=EventType.SOURCES_READY, data=section.to_dict())


def reasoning_updated(section: Section) -> SSEEvent:
    return SSEEvent(
        event=EventType.REASONING_UPDATED,
        data={
            "index": section.index,
            "phase": section.phase.value,
            "reasoning": section.reasoning,
        },
    )


def response_updated(section: Section) -> SSEEvent:
    return SSEEvent(
        event=EventType.RESPONSE_UPDATED,
        data={
            "index": section.index,
            "phase": section.phase.value,
            "response": section.response,
        },
    )


def section_done(section: Section) -> SSEEvent:
    data: dict[str, Any] = section.to_dict()
    data["empty_report"] = section.is_empty_report
    return SSEEvent(event=EventType.SECTION_DONE, data=data)


def section_failed(section: Section) -> SSEEvent:
    return SSEEvent(event=EventType.SECTION_FAILED, data=section.to_dict())


def section_aborted(section: Section) -> SSEEvent:
    return SSEEvent(event=EventType.SECTION_ABORTED, data=section.to_dict())


def error(message: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.ERROR, data={"message": message, **kwargs})
