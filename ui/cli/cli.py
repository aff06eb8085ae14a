"""CLI entrypoint for recursor."""

from __future__ import annotations

import typer

from ui.cli import commands

app = typer.Typer(
    help="Keeps your focus where it belongs while an editor agent works.",
    add_completion=False,
    no_args_is_help=True,
)


@app.command("save")
def save_cmd(
    no_focus: bool = typer.Option(False, "--no-focus", help="Record state without switching windows"),
) -> None:
    """beforeSubmitPrompt hook: remember the previous window and return to it."""
    commands.save(no_focus=no_focus)


@app.command("restore")
def restore_cmd() -> None:
    """stop hook: bring the user back to the editor."""
    commands.restore()


@app.command("before-shell")
def before_shell_cmd() -> None:
    """beforeShellExecution hook: remember the current window and arm the failsafe."""
    commands.before_shell()


@app.command("after-shell")
def after_shell_cmd() -> None:
    """afterShellExecution hook: return to the window used before the command."""
    commands.after_shell()


@app.command("check-idle")
def check_idle_cmd(
    conversation_id: str = typer.Argument(..., help="Parent conversation id"),
    delay: float | None = typer.Option(None, "--delay", min=0, help="Seconds to wait before checking"),
) -> None:
    """Failsafe: after the delay, focus the editor if a shell command is still pending."""
    commands.check_idle(conversation_id=conversation_id, delay=delay)


@app.command("status")
def status_cmd(
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Show saved conversation state."""
    commands.status(as_json=as_json)


@app.command("clear")
def clear_cmd(
    conversation: str | None = typer.Option(None, "--conversation", "-c", help="Only clear this conversation"),
) -> None:
    """Remove saved state."""
    commands.clear(conversation_id=conversation)


@app.command("permissions")
def permissions_cmd() -> None:
    """Check window access and editor focus, prompting for permissions where needed."""
    commands.permissions()


@app.command("allowlist")
def allowlist_cmd(
    command: str | None = typer.Argument(None, help="Shell command to check"),
    db: str | None = typer.Option(None, "--db", help="Path to the editor state database"),
) -> None:
    """List the editor's auto-run command allowlist or check one command."""
    commands.allowlist(command=command, db=db)


@app.command("install-hooks")
def install_hooks_cmd(
    command: str | None = typer.Option(None, "--command", help="Command prefix written into hooks.json"),
) -> None:
    """Register recursor in the editor's hooks.json."""
    commands.install(command=command)


@app.command("config")
def config_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
