"""Pure focus decisions used by the hook engine."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from memory.types.conversation import ConversationState
from world_model.desktop_state import DEFAULT_EDITOR_TOKEN, WindowHandle


def select_window_to_save(
    current_window: WindowHandle | None,
    previous_window: WindowHandle | None,
) -> WindowHandle | None:
    """Prefer the window the user came from, else the current one."""
    if previous_window is not None:
        return previous_window
    return current_window


def should_force_refocus(
    conversation: ConversationState,
    current_window: WindowHandle,
    editor_token: str = DEFAULT_EDITOR_TOKEN,
) -> bool:
    """Decide whether pulling the user back to the editor is acceptable."""
    if conversation.user_switched:
        return False
    if current_window.is_agent_editor(editor_token):
        return True
    if current_window.app_name != conversation.saved_window.app_name:
        return False
    return True


def secondary_window_for_shell(
    current_window: WindowHandle | None,
    previous_window_probe: Callable[[], WindowHandle | None],
    editor_token: str = DEFAULT_EDITOR_TOKEN,
) -> WindowHandle | None:
    """Window to return to once a shell command finishes.

    The probe is only called when the user is currently in the editor.
    """
    if current_window is None:
        return None
    if current_window.is_agent_editor(editor_token):
        return previous_window_probe()
    return current_window


def failsafe_due(state: ConversationState, now: datetime, delay: timedelta) -> bool:
    """True once ``delay`` has passed since the entry was written and it has not fired yet."""
    if state.refocused_at is not None:
        return False
    return state.age(now) >= delay
