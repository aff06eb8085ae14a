"""Shared fakes for desktop-free tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from core.hook_engine import EngineSettings, HookEngine
from governance.audit_logger import AuditLogger
from memory.stores.conversation_store import ConversationStore
from os_controller.base_controller import WindowController, WindowControlError
from world_model.desktop_state import EditorProfile, WindowHandle


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeController(WindowController):
    """In-memory window system that records every focus change."""

    platform_name = "fake"

    def __init__(
        self,
        active: WindowHandle | None = None,
        previous: WindowHandle | None = None,
        failing: set[str] | None = None,
    ) -> None:
        super().__init__(editor=EditorProfile())
        self.active = active
        self.previous = previous
        self.failing = failing or set()
        self.calls: list[tuple[Any, ...]] = []
        self.statuses: list[str] = []

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise WindowControlError(f"{name} unavailable")

    def get_active_window(self) -> WindowHandle:
        self._check("get_active_window")
        if self.active is None:
            raise WindowControlError("no active window")
        return self.active

    def get_previous_window(self) -> WindowHandle:
        self._check("get_previous_window")
        if self.previous is None:
            raise WindowControlError("no previous window")
        return self.previous

    def focus_window(self, window: WindowHandle) -> None:
        self._check("focus_window")
        self.calls.append(("focus_window", window))
        self.active = window

    def focus_editor(self) -> None:
        self._check("focus_editor")
        self.calls.append(("focus_editor",))

    def focus_editor_window(self, window: WindowHandle) -> None:
        self._check("focus_editor_window")
        self.calls.append(("focus_editor_window", window))
        self.active = window

    def pause_media_if_playing(self, hint: str) -> bool:
        self.calls.append(("pause_media", hint))
        return True

    def resume_media(self, hint: str) -> bool:
        self.calls.append(("resume_media", hint))
        return True

    def publish_status(self, status: str, *args: Any, **kwargs: Any) -> None:
        self._check("publish_status")
        self.statuses.append(status)

    def focus_calls(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0].startswith("focus")]


@pytest.fixture
def editor_window() -> WindowHandle:
    return WindowHandle(pid=100, platform_id="100:1", app_name="Cursor", title="main.py - recursor - Cursor")


@pytest.fixture
def chrome_window() -> WindowHandle:
    return WindowHandle(pid=200, platform_id="200:1", app_name="Google Chrome", title="Video - YouTube")


@pytest.fixture
def terminal_window() -> WindowHandle:
    return WindowHandle(pid=300, platform_id="300:1", app_name="Terminal", title="zsh")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock) -> ConversationStore:
    return ConversationStore(tmp_path / ".cursor" / "recursor_state.json", clock=clock)


@pytest.fixture
def controller() -> FakeController:
    return FakeController()


@pytest.fixture
def scheduler() -> MagicMock:
    fake = MagicMock()
    fake.schedule.return_value = True
    return fake


@pytest.fixture
def engine(
    tmp_path: Path,
    store: ConversationStore,
    controller: FakeController,
    scheduler: MagicMock,
    clock: FakeClock,
) -> HookEngine:
    return HookEngine(
        store=store,
        controller=controller,
        scheduler=scheduler,
        audit=AuditLogger(tmp_path / "events.jsonl"),
        settings=EngineSettings(),
        clock=clock,
        sleep=lambda _seconds: None,
    )
