"""Per-event focus orchestration.

Each handler reads the state table, decides with the focus policies,
drives the window controller and persists the outcome. Controller
failures are logged and ignored so the hook response is always produced;
only ``StateStoreError`` escapes a handler.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from core.hook_protocol import (
    AfterShellInput,
    AfterShellOutput,
    BeforeShellInput,
    BeforeSubmitPromptInput,
    BeforeSubmitPromptOutput,
    ShellPermissionOutput,
    StopInput,
    StopOutput,
)
from executor.failsafe import FailsafeScheduler
from governance.audit_logger import AuditLogger
from governance.focus_policy import (
    failsafe_due,
    secondary_window_for_shell,
    select_window_to_save,
    should_force_refocus,
)
from memory.stores.conversation_store import ConversationStore, shell_conversation_id
from memory.types.conversation import ConversationState, utc_now
from os_controller.base_controller import WindowController
from os_controller.status_publisher import (
    STATUS_APPROVAL_NEEDED,
    STATUS_IDLE,
    STATUS_WORKING,
)
from world_model.desktop_state import WindowHandle


@dataclass
class EngineSettings:
    """Tunables for the hook handlers, usually taken from the runtime config."""

    editor_token: str = "cursor"
    autofocus: bool = True
    failsafe_enabled: bool = True
    failsafe_delay: float = 5.0
    save_settle: float = 0.05
    settle: float = 0.1
    media_settle: float = 0.15
    media_enabled: bool = True
    media_apps: list[str] = field(default_factory=lambda: ["Google Chrome"])

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> EngineSettings:
        editor_cfg = config.get("editor", {})
        failsafe_cfg = config.get("failsafe", {})
        focus_cfg = config.get("focus", {})
        media_cfg = config.get("media", {})
        return cls(
            editor_token=str(editor_cfg.get("app_token", "cursor")).lower(),
            autofocus=bool(focus_cfg.get("autofocus", True)),
            failsafe_enabled=bool(failsafe_cfg.get("enabled", True)),
            failsafe_delay=float(failsafe_cfg.get("delay_seconds", 5)),
            save_settle=float(focus_cfg.get("save_settle_ms", 50)) / 1000,
            settle=float(focus_cfg.get("settle_ms", 100)) / 1000,
            media_settle=float(focus_cfg.get("media_settle_ms", 150)) / 1000,
            media_enabled=bool(media_cfg.get("enabled", True)),
            media_apps=list(media_cfg.get("apps", ["Google Chrome"])),
        )


class HookEngine:
    """Handlers for save, restore, before_shell, after_shell and check_idle."""

    def __init__(
        self,
        store: ConversationStore,
        controller: WindowController,
        scheduler: FailsafeScheduler,
        audit: AuditLogger | None = None,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.controller = controller
        self.scheduler = scheduler
        self.audit = audit
        self.settings = settings or EngineSettings()
        self.clock = clock
        self.sleep = sleep
        self.logger = logging.getLogger("recursor.engine")

    def save(
        self, payload: BeforeSubmitPromptInput, autofocus: bool = True
    ) -> BeforeSubmitPromptOutput:
        """Remember where the user came from and send them back there."""
        conversation_id = payload.conversation_key
        current = self._query("get_active_window", self.controller.get_active_window)
        previous = self._query("get_previous_window", self.controller.get_previous_window)
        target = select_window_to_save(current, previous)
        if target is None:
            self._audit("save", conversation_id, "no_window")
            return BeforeSubmitPromptOutput()

        editor_window = current if self._is_editor(current) else None
        self.store.save(conversation_id, target, editor_window)

        focused = False
        resumed: bool | None = None
        if autofocus and self.settings.autofocus:
            self.sleep(self.settings.save_settle)
            focused = self._act("focus_window", self.controller.focus_window, target)
            if self._is_media_app(target):
                self.sleep(self.settings.settle)
                resumed = bool(self._query("resume_media", self.controller.resume_media, target.title))

        self._publish(STATUS_WORKING, "agent_working", target, resumed)
        self._audit(
            "save",
            conversation_id,
            "saved",
            {"window": target.describe(), "editor_window": editor_window is not None, "focused": focused},
        )
        return BeforeSubmitPromptOutput()

    def restore(self, payload: StopInput) -> StopOutput:
        """Bring the user back to the editor once the agent has finished."""
        conversation_id = payload.conversation_key
        state = self.store.load(conversation_id)

        current = self._query("get_active_window", self.controller.get_active_window)
        if current is not None and self._is_media_app(current):
            self._query("pause_media_if_playing", self.controller.pause_media_if_playing, current.title)

        self.sleep(self.settings.settle)
        focused = self._focus_editor(state)
        self._publish(STATUS_IDLE, "idle")

        self.store.clear(conversation_id)
        self.store.clear(shell_conversation_id(conversation_id))
        self._audit(
            "restore",
            conversation_id,
            "restored",
            {"had_state": state is not None, "focused": focused, "status": payload.status},
        )
        return StopOutput()

    def before_shell(self, payload: BeforeShellInput) -> ShellPermissionOutput:
        """Record where to return after the command and arm the failsafe."""
        conversation_id = payload.conversation_key
        current = self._query("get_active_window", self.controller.get_active_window)
        secondary = secondary_window_for_shell(
            current,
            lambda: self._query("get_previous_window", self.controller.get_previous_window),
            self.settings.editor_token,
        )
        if secondary is not None:
            self.store.save(shell_conversation_id(conversation_id), secondary, None)

        armed = False
        if self.settings.failsafe_enabled:
            armed = self.scheduler.schedule(conversation_id, self.settings.failsafe_delay)

        self._audit(
            "before_shell",
            conversation_id,
            "pending" if secondary is not None else "no_secondary",
            {
                "command": payload.command,
                "window": secondary.describe() if secondary else None,
                "failsafe": armed,
            },
        )
        return ShellPermissionOutput()

    def after_shell(self, payload: AfterShellInput) -> AfterShellOutput:
        """Return the user to the window recorded before the command ran."""
        conversation_id = payload.conversation_key
        shell_id = shell_conversation_id(conversation_id)
        state = self.store.load(shell_id)
        if state is None:
            self._audit("after_shell", conversation_id, "noop")
            return AfterShellOutput()

        window = state.saved_window
        self.sleep(self.settings.settle)
        focused = self._act("focus_window", self.controller.focus_window, window)
        resumed: bool | None = None
        if self._is_media_app(window):
            self.sleep(self.settings.media_settle)
            resumed = bool(self._query("resume_media", self.controller.resume_media, window.title))

        self.store.clear(shell_id)
        self._publish(STATUS_WORKING, "agent_working", window, resumed)
        self._audit("after_shell", conversation_id, "returned", {"window": window.describe(), "focused": focused})
        return AfterShellOutput()

    def check_idle(self, conversation_id: str, delay: float | None = None) -> bool:
        """Failsafe body. Returns True when it pulled the user to the editor."""
        delay = self.settings.failsafe_delay if delay is None else delay
        shell_id = shell_conversation_id(conversation_id)
        state = self.store.load(shell_id)
        if state is None:
            self.logger.debug("No pending shell entry for %s", conversation_id)
            return False

        now = self.clock()
        if not failsafe_due(state, now, timedelta(seconds=delay)):
            reason = "already_fired" if state.refocused_at is not None else "too_early"
            self._audit("check_idle", conversation_id, reason)
            return False

        # Leave a user alone who has moved on to some unrelated app.
        current = self._query("get_active_window", self.controller.get_active_window)
        if current is not None and not should_force_refocus(state, current, self.settings.editor_token):
            self._audit("check_idle", conversation_id, "user_elsewhere", {"window": current.describe()})
            return False

        # Stamp first so an overlapping check for the same entry stands down.
        self.store.mark_refocused(shell_id, now)

        paused: bool | None = None
        if self._is_media_app(state.saved_window):
            paused = bool(
                self._query("pause_media_if_playing", self.controller.pause_media_if_playing, state.saved_window.title)
            )
        focused = self._focus_editor(self.store.load(conversation_id))
        self._publish(STATUS_APPROVAL_NEEDED, "approval_needed", state.saved_window, False if paused else None)
        self._audit("check_idle", conversation_id, "refocused", {"focused": focused, "paused_media": paused})
        return True

    def status(self) -> dict[str, ConversationState]:
        return self.store.list_all()

    def clear(self, conversation_id: str | None = None) -> None:
        """Drop one conversation (and its shell entry) or the whole table."""
        if conversation_id is None:
            self.store.clear_all()
            return
        self.store.clear(conversation_id)
        self.store.clear(shell_conversation_id(conversation_id))

    def _focus_editor(self, state: ConversationState | None) -> bool:
        if state is not None and state.editor_window is not None:
            return self._act("focus_editor_window", self.controller.focus_editor_window, state.editor_window)
        return self._act("focus_editor", self.controller.focus_editor)

    def _publish(
        self,
        status: str,
        cursor_state: str,
        window: WindowHandle | None = None,
        media_playing: bool | None = None,
    ) -> None:
        self._act(
            "publish_status",
            self.controller.publish_status,
            status,
            cursor_state,
            window.app_name if window else None,
            window.title if window else None,
            media_playing,
        )

    def _is_editor(self, window: WindowHandle | None) -> bool:
        return window is not None and window.is_agent_editor(self.settings.editor_token)

    def _is_media_app(self, window: WindowHandle) -> bool:
        return self.settings.media_enabled and window.app_name in self.settings.media_apps

    def _query(self, label: str, func: Callable[..., Any], *args: Any) -> Any | None:
        try:
            return func(*args)
        except Exception as e:
            self.logger.warning("%s failed: %s", label, e)
            return None

    def _act(self, label: str, func: Callable[..., Any], *args: Any) -> bool:
        try:
            func(*args)
        except Exception as e:
            self.logger.warning("%s failed: %s", label, e)
            return False
        return True

    def _audit(
        self, hook: str, conversation_id: str, action: str, details: dict[str, Any] | None = None
    ) -> None:
        if self.audit is not None:
            self.audit.log(hook, conversation_id, action, details)
