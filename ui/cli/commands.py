"""Typer command handlers."""

from __future__ import annotations

import json
import platform
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn, TypeVar

import typer

from core.hook_protocol import (
    AfterShellInput,
    BeforeShellInput,
    BeforeSubmitPromptInput,
    HookInput,
    HookOutput,
    StopInput,
    read_hook_input,
)
from core.hooks_installer import install_hooks
from core.orchestrator import Orchestrator, RuntimeBundle
from core.system_inspector import inspect_system, missing_window_tools
from executor.failsafe import run_delayed_check
from governance.command_allowlist import CommandAllowlist, default_database_path
from memory.stores.conversation_store import StateStoreError

InputT = TypeVar("InputT", bound=HookInput)


def _runtime() -> RuntimeBundle:
    bundle = Orchestrator().build()
    return bundle


def _fail(message: str) -> NoReturn:
    typer.echo(f"recursor: {message}", err=True)
    raise typer.Exit(code=1)


def _run_hook(model: type[InputT], handler: Callable[[RuntimeBundle, InputT], HookOutput]) -> None:
    payload = read_hook_input(model)
    bundle = _runtime()
    try:
        output = handler(bundle, payload)
    except StateStoreError as e:
        _fail(str(e))
    typer.echo(output.to_json())


def save(no_focus: bool = False) -> None:
    """Handle beforeSubmitPrompt."""
    _run_hook(
        BeforeSubmitPromptInput,
        lambda bundle, payload: bundle.engine.save(payload, autofocus=not no_focus),
    )


def restore() -> None:
    """Handle stop."""
    _run_hook(StopInput, lambda bundle, payload: bundle.engine.restore(payload))


def before_shell() -> None:
    """Handle beforeShellExecution."""
    _run_hook(BeforeShellInput, lambda bundle, payload: bundle.engine.before_shell(payload))


def after_shell() -> None:
    """Handle afterShellExecution."""
    _run_hook(AfterShellInput, lambda bundle, payload: bundle.engine.after_shell(payload))


def check_idle(conversation_id: str, delay: float | None = None) -> None:
    """Sleep, then run the failsafe check for ``conversation_id``."""
    bundle = _runtime()
    effective = bundle.engine.settings.failsafe_delay if delay is None else delay
    try:
        run_delayed_check(bundle.engine.check_idle, conversation_id, effective)
    except StateStoreError as e:
        _fail(str(e))


def status(as_json: bool = False) -> None:
    """Print saved conversation state."""
    bundle = _runtime()
    conversations = bundle.engine.status()
    if as_json:
        data = {cid: state.model_dump(mode="json") for cid, state in conversations.items()}
        typer.echo(json.dumps(data, indent=2, sort_keys=True))
        return
    if not conversations:
        typer.echo("No saved state.")
        return

    typer.echo("Recursor State:")
    typer.echo("===============")
    for conversation_id, state in conversations.items():
        typer.echo(f"\nConversation: {conversation_id}")
        typer.echo("  Saved Window:")
        typer.echo(f"    App: {state.saved_window.app_name}")
        typer.echo(f"    Title: {state.saved_window.title}")
        typer.echo(f"    PID: {state.saved_window.pid}")
        if state.editor_window is not None:
            typer.echo("  Editor Window:")
            typer.echo(f"    Title: {state.editor_window.title}")
            typer.echo(f"    PID: {state.editor_window.pid}")
        typer.echo(f"  Saved At: {state.saved_at.isoformat()}")
        typer.echo(f"  User Switched: {state.user_switched}")
        if state.refocused_at is not None:
            typer.echo(f"  Failsafe Fired At: {state.refocused_at.isoformat()}")


def clear(conversation_id: str | None = None) -> None:
    """Remove one conversation or everything."""
    bundle = _runtime()
    try:
        bundle.engine.clear(conversation_id)
    except StateStoreError as e:
        _fail(str(e))
    if conversation_id is None:
        typer.echo("Saved state cleared.")
    else:
        typer.echo(f"Cleared conversation {conversation_id}.")


def permissions() -> None:
    """Exercise window access the way the hooks will."""
    bundle = _runtime()
    controller = bundle.controller
    info = inspect_system()

    typer.echo("Recursor Permissions Check")
    typer.echo("==========================")
    typer.echo(f"Platform: {info['platform']} (Python {info['python_version']})")
    missing = missing_window_tools(info["system"])
    if missing:
        typer.echo(f"Missing tools: {', '.join(missing)}")

    typer.echo("Checking window access... ", nl=False)
    try:
        window = controller.get_active_window()
    except Exception as e:
        typer.echo("FAILED")
        typer.echo(f"  Error: {e}")
        hint = controller.accessibility_help()
        if hint:
            typer.echo(f"  {hint}")
        raise typer.Exit(code=1)
    typer.echo("OK")
    typer.echo(f"  Current window: {window.describe()}")

    typer.echo(f"Checking {bundle.editor.app_name} focus... ", nl=False)
    try:
        controller.focus_editor()
    except Exception as e:
        typer.echo(f"FAILED ({bundle.editor.app_name} may not be running)")
        typer.echo(f"  Error: {e}")
    else:
        typer.echo("OK")
    typer.echo("Permissions check complete.")


def allowlist(command: str | None = None, db: str | None = None) -> None:
    """List the allowlist or check one command against it."""
    bundle = _runtime()
    db_path = Path(db) if db else default_database_path(platform.system(), bundle.home, bundle.editor.app_name)
    reader = CommandAllowlist(db_path)
    if command is None:
        entries = reader.read()
        if not entries:
            typer.echo(f"No allowlisted commands found in {db_path}")
            return
        for entry in entries:
            typer.echo(entry)
        return
    decision = reader.check(command)
    if decision.allowed:
        typer.echo(f"allowed (matches '{decision.matched}')")
    else:
        typer.echo("needs approval")


def install(command: str | None = None) -> None:
    """Write hook entries into hooks.json."""
    bundle = _runtime()
    hooks_path = bundle.paths["hooks_file"]
    try:
        merged = install_hooks(hooks_path, command)
    except (OSError, ValueError) as e:
        _fail(str(e))
    typer.echo(f"Hooks written to {hooks_path}")
    for event, entries in merged["hooks"].items():
        for entry in entries:
            text = entry.get("command", "") if isinstance(entry, dict) else entry
            typer.echo(f"  {event}: {text}")


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    typer.echo(json.dumps(bundle.config, indent=2, default=str))
