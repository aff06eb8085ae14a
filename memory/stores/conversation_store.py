"""Durable conversation-keyed focus state backed by a single JSON file."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from memory.stores.json_file import atomic_write_json, read_json_object
from memory.types.conversation import ConversationState, StateTable, utc_now
from world_model.desktop_state import WindowHandle

SHELL_SUFFIX = "_shell"
DEFAULT_STALE_AFTER = timedelta(hours=1)


class StateStoreError(RuntimeError):
    """Raised when the state file cannot be written or removed."""


def shell_conversation_id(conversation_id: str) -> str:
    """Key under which a shell-command save for ``conversation_id`` lives."""
    return f"{conversation_id}{SHELL_SUFFIX}"


class ConversationStore:
    """Read-modify-write access to the state table.

    Every call re-reads the file; there is no cache across calls. Entries
    older than ``stale_after`` or failing validation are dropped on every
    read, and the pruned table is written back when anything was dropped.
    """

    def __init__(
        self,
        state_path: Path,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.state_path = state_path
        self.stale_after = stale_after
        self.clock = clock
        self.logger = logging.getLogger("recursor.store")

    def save(
        self,
        conversation_id: str,
        saved_window: WindowHandle,
        editor_window: WindowHandle | None = None,
    ) -> ConversationState:
        """Replace the entry for ``conversation_id`` with a fresh one."""
        table = self._load_table()
        state = ConversationState(
            saved_window=saved_window,
            editor_window=editor_window,
            saved_at=self.clock(),
        )
        table.conversations[conversation_id] = state
        self._write(table)
        self.logger.debug("Saved %s -> %s", conversation_id, saved_window.describe())
        return state

    def load(self, conversation_id: str) -> ConversationState | None:
        return self._load_table().conversations.get(conversation_id)

    def clear(self, conversation_id: str) -> None:
        table = self._load_table()
        if table.conversations.pop(conversation_id, None) is None:
            return
        self._write(table)
        self.logger.debug("Cleared %s", conversation_id)

    def clear_all(self) -> None:
        """Delete the backing file."""
        try:
            self.state_path.unlink(missing_ok=True)
        except OSError as e:
            raise StateStoreError(f"Cannot remove state file {self.state_path}: {e}") from e

    def list_all(self) -> dict[str, ConversationState]:
        return dict(self._load_table().conversations)

    def mark_refocused(
        self, conversation_id: str, at: datetime | None = None
    ) -> ConversationState | None:
        """Stamp ``refocused_at`` on an entry, keeping its ``saved_at``."""
        table = self._load_table()
        state = table.conversations.get(conversation_id)
        if state is None:
            return None
        updated = state.model_copy(update={"refocused_at": at or self.clock()})
        table.conversations[conversation_id] = updated
        self._write(table)
        return updated

    def _load_table(self) -> StateTable:
        data = read_json_object(self.state_path)
        if data is None:
            if self.state_path.exists():
                self.logger.warning("Ignoring unreadable state file %s", self.state_path)
            return StateTable()
        raw_entries = data.get("conversations", {})
        if not isinstance(raw_entries, dict):
            self.logger.warning("Ignoring malformed state file %s", self.state_path)
            return StateTable()

        table = StateTable()
        dropped: list[str] = []
        for conversation_id, raw in raw_entries.items():
            try:
                table.conversations[conversation_id] = ConversationState.model_validate(raw)
            except ValidationError as e:
                self.logger.warning("Dropping malformed entry %s: %s", conversation_id, e)
                dropped.append(conversation_id)

        now = self.clock()
        stale = [
            conversation_id
            for conversation_id, state in table.conversations.items()
            if state.is_stale(now, self.stale_after)
        ]
        for conversation_id in stale:
            del table.conversations[conversation_id]
        if stale:
            self.logger.info("Evicted %d stale conversation(s): %s", len(stale), ", ".join(stale))
        if stale or dropped:
            try:
                self._write(table)
            except StateStoreError as e:
                self.logger.warning("Could not persist pruned state: %s", e)
        return table

    def _write(self, table: StateTable) -> None:
        try:
            atomic_write_json(self.state_path, table.model_dump(mode="json"))
        except OSError as e:
            self.logger.error("State write failed for %s: %s", self.state_path, e)
            raise StateStoreError(f"Cannot write state file {self.state_path}: {e}") from e
