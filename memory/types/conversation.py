"""Conversation focus state models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field, field_validator

from world_model.desktop_state import WindowHandle


def utc_now() -> datetime:
    return datetime.now(UTC)


class ConversationState(BaseModel):
    """Where to send the user for one agent conversation."""

    saved_window: WindowHandle
    editor_window: WindowHandle | None = None
    saved_at: datetime = Field(default_factory=utc_now)
    user_switched: bool = False
    refocused_at: datetime | None = None

    @field_validator("saved_at", "refocused_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def age(self, now: datetime) -> timedelta:
        return now - self.saved_at

    def is_stale(self, now: datetime, threshold: timedelta) -> bool:
        return self.age(now) >= threshold


class StateTable(BaseModel):
    """Persisted mapping of conversation id to state."""

    conversations: dict[str, ConversationState] = Field(default_factory=dict)
