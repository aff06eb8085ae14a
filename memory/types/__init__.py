"""Typed state payload models."""

from memory.types.conversation import ConversationState, StateTable, utc_now

__all__ = [
    "ConversationState",
    "StateTable",
    "utc_now",
]
