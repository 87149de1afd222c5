from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    SECTION_CREATED = "section_created"
    SOURCES_READY = "sources_ready"
    REASONING_UPDATED = "reasoning_updated"
    RESPONSE_UPDATED = "response_updated"
    SECTION_DONE = "section_done"
    SECTION_FAILED = "section_failed"
    SECTION_ABORTED = "section_aborted"
    ERROR = "error"


TERMINAL_EVENTS = frozenset(
    {EventType.SECTION_DONE, EventType.SECTION_FAILED, EventType.SECTION_ABORTED}
)


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENTS

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"
