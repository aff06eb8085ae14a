"""Hook orchestration scenarios against a fake window system."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.hook_engine import EngineSettings, HookEngine
from core.hook_protocol import (
    AfterShellInput,
    BeforeShellInput,
    BeforeSubmitPromptInput,
    StopInput,
)
from memory.stores.conversation_store import ConversationStore, StateStoreError
from world_model.desktop_state import WindowHandle


def test_save_remembers_previous_window_and_focuses_it(
    engine: HookEngine, controller, store: ConversationStore, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    controller.active = editor_window
    controller.previous = chrome_window

    output = engine.save(BeforeSubmitPromptInput(conversation_id="c1"))

    assert json.loads(output.to_json()) == {"continue": True}
    state = store.load("c1")
    assert state is not None
    assert state.saved_window == chrome_window
    assert state.editor_window == editor_window
    assert controller.focus_calls() == [("focus_window", chrome_window)]
    assert ("resume_media", chrome_window.title) in controller.calls
    assert controller.statuses == ["working"]


def test_save_falls_back_to_current_window(
    engine: HookEngine, controller, store: ConversationStore, editor_window: WindowHandle
) -> None:
    controller.active = editor_window

    engine.save(BeforeSubmitPromptInput(conversation_id="c1"))

    state = store.load("c1")
    assert state is not None
    assert state.saved_window == editor_window


def test_save_without_any_window_still_continues(engine: HookEngine, controller, store: ConversationStore) -> None:
    output = engine.save(BeforeSubmitPromptInput(conversation_id="c1"))

    assert output.continue_ is True
    assert store.load("c1") is None
    assert controller.calls == []


def test_save_no_focus_records_without_switching(
    engine: HookEngine, controller, store: ConversationStore, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    controller.active = editor_window
    controller.previous = chrome_window

    engine.save(BeforeSubmitPromptInput(conversation_id="c1"), autofocus=False)

    assert store.load("c1") is not None
    assert controller.focus_calls() == []


def test_save_does_not_record_editor_window_from_other_app(
    engine: HookEngine, controller, store: ConversationStore, terminal_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    controller.active = terminal_window
    controller.previous = chrome_window

    engine.save(BeforeSubmitPromptInput(conversation_id="c1"))

    state = store.load("c1")
    assert state is not None
    assert state.editor_window is None


def test_save_survives_controller_failures(
    engine: HookEngine, controller, store: ConversationStore, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    controller.active = editor_window
    controller.previous = chrome_window
    controller.failing = {"focus_window", "publish_status"}

    output = engine.save(BeforeSubmitPromptInput(conversation_id="c1"))

    assert output.continue_ is True
    assert store.load("c1") is not None


def test_restore_focuses_remembered_editor_window_and_clears(
    engine: HookEngine, controller, store: ConversationStore, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    store.save("c1", chrome_window, editor_window)
    store.save("c1_shell", chrome_window)
    controller.active = chrome_window

    output = engine.restore(StopInput(conversation_id="c1"))

    assert json.loads(output.to_json()) == {}
    assert ("pause_media", chrome_window.title) in controller.calls
    assert controller.focus_calls() == [("focus_editor_window", editor_window)]
    assert store.load("c1") is None
    assert store.load("c1_shell") is None
    assert controller.statuses == ["idle"]


def test_restore_without_state_focuses_editor_generically(engine: HookEngine, controller) -> None:
    engine.restore(StopInput())

    assert controller.focus_calls() == [("focus_editor",)]


def test_restore_emits_response_when_focus_fails(engine: HookEngine, controller, store: ConversationStore, chrome_window: WindowHandle) -> None:
    store.save("c1", chrome_window)
    controller.failing = {"focus_editor", "get_active_window"}

    output = engine.restore(StopInput(conversation_id="c1"))

    assert output.to_json() == "{}"
    assert store.load("c1") is None


def test_before_shell_from_editor_saves_previous_and_arms_failsafe(
    engine: HookEngine, controller, scheduler: MagicMock, store: ConversationStore,
    editor_window: WindowHandle, chrome_window: WindowHandle,
) -> None:
    controller.active = editor_window
    controller.previous = chrome_window

    output = engine.before_shell(BeforeShellInput(conversation_id="c1", command="npm test"))

    assert json.loads(output.to_json()) == {"permission": "allow"}
    state = store.load("c1_shell")
    assert state is not None
    assert state.saved_window == chrome_window
    scheduler.schedule.assert_called_once_with("c1", 5.0)
    assert controller.focus_calls() == []


def test_before_shell_outside_editor_saves_current(
    engine: HookEngine, controller, store: ConversationStore, terminal_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    controller.active = terminal_window
    controller.previous = chrome_window

    engine.before_shell(BeforeShellInput(conversation_id="c1"))

    state = store.load("c1_shell")
    assert state is not None
    assert state.saved_window == terminal_window


def test_before_shell_always_arms_failsafe(engine: HookEngine, scheduler: MagicMock, store: ConversationStore) -> None:
    output = engine.before_shell(BeforeShellInput(conversation_id="c1"))

    assert output.permission == "allow"
    assert store.load("c1_shell") is None
    scheduler.schedule.assert_called_once_with("c1", 5.0)


def test_before_shell_respects_disabled_failsafe(
    tmp_path: Path, store: ConversationStore, controller, scheduler: MagicMock, clock
) -> None:
    engine = HookEngine(
        store=store,
        controller=controller,
        scheduler=scheduler,
        settings=EngineSettings(failsafe_enabled=False),
        clock=clock,
        sleep=lambda _s: None,
    )
    engine.before_shell(BeforeShellInput(conversation_id="c1"))
    scheduler.schedule.assert_not_called()


def test_after_shell_returns_to_saved_window(
    engine: HookEngine, controller, store: ConversationStore, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    controller.active = editor_window
    controller.previous = chrome_window
    engine.before_shell(BeforeShellInput(conversation_id="c1"))

    output = engine.after_shell(AfterShellInput(conversation_id="c1", command="ls", output="", duration=0.2))

    assert output.to_json() == "{}"
    assert controller.focus_calls() == [("focus_window", chrome_window)]
    assert ("resume_media", chrome_window.title) in controller.calls
    assert store.load("c1_shell") is None
    assert controller.statuses == ["working"]


def test_after_shell_without_entry_is_noop(engine: HookEngine, controller) -> None:
    engine.after_shell(AfterShellInput(conversation_id="c1"))
    assert controller.calls == []


def test_check_idle_after_delay_focuses_parent_editor_window(
    engine: HookEngine, controller, store: ConversationStore, clock,
    editor_window: WindowHandle, chrome_window: WindowHandle,
) -> None:
    store.save("c1", chrome_window, editor_window)
    controller.active = editor_window
    controller.previous = chrome_window
    engine.before_shell(BeforeShellInput(conversation_id="c1"))
    controller.active = chrome_window
    clock.advance(5)

    assert engine.check_idle("c1", 5) is True

    assert controller.focus_calls() == [("focus_editor_window", editor_window)]
    assert ("pause_media", chrome_window.title) in controller.calls
    assert controller.statuses == ["approval_needed"]
    shell_state = store.load("c1_shell")
    assert shell_state is not None
    assert shell_state.refocused_at == clock()


def test_check_idle_does_not_fire_twice(
    engine: HookEngine, controller, store: ConversationStore, clock, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    store.save("c1", chrome_window, editor_window)
    store.save("c1_shell", chrome_window)
    controller.active = chrome_window
    clock.advance(6)

    assert engine.check_idle("c1", 5) is True
    clock.advance(6)
    assert engine.check_idle("c1", 5) is False
    assert len(controller.focus_calls()) == 1


def test_check_idle_without_parent_uses_generic_editor(
    engine: HookEngine, controller, store: ConversationStore, clock, chrome_window: WindowHandle
) -> None:
    store.save("c1_shell", chrome_window)
    controller.active = chrome_window
    clock.advance(5)

    assert engine.check_idle("c1", 5) is True
    assert controller.focus_calls() == [("focus_editor",)]


def test_check_idle_is_noop_once_command_finished(
    engine: HookEngine, controller, store: ConversationStore, clock, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    controller.active = editor_window
    controller.previous = chrome_window
    engine.before_shell(BeforeShellInput(conversation_id="c1"))
    engine.after_shell(AfterShellInput(conversation_id="c1"))
    controller.calls.clear()
    clock.advance(10)

    assert engine.check_idle("c1", 5) is False
    assert controller.calls == []


def test_stale_timer_yields_to_newer_before_shell(
    engine: HookEngine, controller, store: ConversationStore, clock, chrome_window: WindowHandle
) -> None:
    controller.active = chrome_window
    engine.before_shell(BeforeShellInput(conversation_id="c1"))
    clock.advance(3)
    engine.before_shell(BeforeShellInput(conversation_id="c1"))
    clock.advance(2)

    # First timer wakes 5s after the first save but only 2s after the second.
    assert engine.check_idle("c1", 5) is False
    clock.advance(3)
    assert engine.check_idle("c1", 5) is True


def test_check_idle_leaves_user_in_unrelated_app(
    engine: HookEngine, controller, store: ConversationStore, clock,
    chrome_window: WindowHandle, terminal_window: WindowHandle,
) -> None:
    store.save("c1_shell", chrome_window)
    controller.active = terminal_window
    clock.advance(5)

    assert engine.check_idle("c1", 5) is False
    assert controller.focus_calls() == []


def test_check_idle_forces_when_current_window_unknown(
    engine: HookEngine, controller, store: ConversationStore, clock, chrome_window: WindowHandle
) -> None:
    store.save("c1_shell", chrome_window)
    controller.failing = {"get_active_window"}
    clock.advance(5)

    assert engine.check_idle("c1", 5) is True


def test_after_shell_still_returns_user_after_failsafe(
    engine: HookEngine, controller, store: ConversationStore, clock, editor_window: WindowHandle, chrome_window: WindowHandle
) -> None:
    store.save("c1", chrome_window, editor_window)
    store.save("c1_shell", chrome_window)
    controller.active = chrome_window
    clock.advance(5)
    engine.check_idle("c1", 5)
    controller.calls.clear()

    engine.after_shell(AfterShellInput(conversation_id="c1"))

    assert controller.focus_calls() == [("focus_window", chrome_window)]
    assert store.load("c1_shell") is None


def test_default_conversation_id_is_used_when_missing(
    engine: HookEngine, controller, store: ConversationStore, editor_window: WindowHandle
) -> None:
    controller.active = editor_window
    engine.save(BeforeSubmitPromptInput())
    assert store.load("default") is not None


def test_clear_one_or_all(engine: HookEngine, store: ConversationStore, chrome_window: WindowHandle) -> None:
    store.save("a", chrome_window)
    store.save("a_shell", chrome_window)
    store.save("b", chrome_window)

    engine.clear("a")
    assert set(engine.status()) == {"b"}

    engine.clear()
    assert engine.status() == {}


def test_state_store_errors_propagate(
    tmp_path: Path, controller, scheduler: MagicMock, clock, editor_window: WindowHandle
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    engine = HookEngine(
        store=ConversationStore(blocker / "state.json", clock=clock),
        controller=controller,
        scheduler=scheduler,
        clock=clock,
        sleep=lambda _s: None,
    )
    controller.active = editor_window

    with pytest.raises(StateStoreError):
        engine.save(BeforeSubmitPromptInput(conversation_id="c1"))


def test_audit_log_records_each_hook(engine: HookEngine, tmp_path: Path, controller, editor_window: WindowHandle) -> None:
    controller.active = editor_window
    engine.save(BeforeSubmitPromptInput(conversation_id="c1"))
    engine.restore(StopInput(conversation_id="c1"))

    lines = (tmp_path / "events.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line) for line in lines]
    assert [e["hook"] for e in events] == ["save", "restore"]
    assert all(e["conversation_id"] == "c1" for e in events)


def test_settings_from_config() -> None:
    settings = EngineSettings.from_config(
        {
            "editor": {"app_token": "Code"},
            "failsafe": {"delay_seconds": 8, "enabled": False},
            "focus": {"settle_ms": 250, "autofocus": False},
            "media": {"apps": ["Firefox"]},
        }
    )
    assert settings.editor_token == "code"
    assert settings.failsafe_delay == 8.0
    assert settings.failsafe_enabled is False
    assert settings.settle == 0.25
    assert settings.autofocus is False
    assert settings.media_apps == ["Firefox"]
