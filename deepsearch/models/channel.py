from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Channel(str, Enum):
    REASONING = "reasoning"
    ANSWER = "answer"
    UNPARSEABLE = "unparseable"


@dataclass(frozen=True)
class ChannelEvent:
    """A classified unit extracted from one line of the completion stream."""

    kind: Channel
    text: str = ""

    @classmethod
    def reasoning(cls, text: str) -> "ChannelEvent":
        return cls(Channel.REASONING, text)

    @classmethod
    def answer(cls, text: str) -> "ChannelEvent":
        return cls(Channel.ANSWER, text)

    @classmethod
    def unparseable(cls, raw: str) -> "ChannelEvent":
        return cls(Channel.UNPARSEABLE, raw)
