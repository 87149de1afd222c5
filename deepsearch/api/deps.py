from __future__ import annotations

from typing import Callable

from deepsearch.agents.orchestrator import Conversation, QueryOrchestrator


class ConversationRegistry:
    """In-process conversations keyed by id; they live as long as the process."""

    def __init__(self, orchestrator_factory: Callable[[], QueryOrchestrator] = QueryOrchestrator) -> None:
        self.orchestrator_factory = orchestrator_factory
        self._conversations: dict[str, Conversation] = {}

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def get_or_create(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            conversation = Conversation(self.orchestrator_factory())
            self._conversations[conversation_id] = conversation
        return conversation

    def clear(self) -> None:
        for conversation in self._conversations.values():
            conversation.cancel()
        self._conversations.clear()


_registry = ConversationRegistry()


def get_registry() -> ConversationRegistry:
    return _registry
