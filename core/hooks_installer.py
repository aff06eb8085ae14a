"""Registers the recursor subcommands in the editor's hooks.json."""

from __future__ import annotations

import copy
import logging
import shlex
import shutil
import sys
from pathlib import Path
from typing import Any

from memory.stores.json_file import atomic_write_json, read_json_object

HOOK_SUBCOMMANDS = {
    "beforeSubmitPrompt": "save",
    "stop": "restore",
    "beforeShellExecution": "before-shell",
    "afterShellExecution": "after-shell",
}

logger = logging.getLogger("recursor.installer")


def default_hook_command() -> str:
    """Shell-ready command prefix for the installed entry point."""
    installed = shutil.which("recursor")
    if installed:
        return shlex.quote(installed)
    return f"{shlex.quote(sys.executable)} -m ui.cli.cli"


def _is_own_entry(entry: dict[str, Any], command: str, subcommand: str) -> bool:
    text = str(entry.get("command", "")).strip()
    if text == f"{command} {subcommand}":
        return True
    words = text.split()
    return bool(words) and words[-1] == subcommand and "recursor" in text


def merge_hook_entries(document: dict[str, Any], command: str) -> dict[str, Any]:
    """Add one entry per event, replacing earlier recursor entries and keeping others."""
    merged = copy.deepcopy(document)
    merged.setdefault("version", 1)
    hooks = merged.get("hooks")
    if not isinstance(hooks, dict):
        hooks = {}
    for event, subcommand in HOOK_SUBCOMMANDS.items():
        existing = hooks.get(event)
        entries = existing if isinstance(existing, list) else []
        kept = [
            entry
            for entry in entries
            if not (isinstance(entry, dict) and _is_own_entry(entry, command, subcommand))
        ]
        kept.append({"command": f"{command} {subcommand}"})
        hooks[event] = kept
    merged["hooks"] = hooks
    return merged


def install_hooks(hooks_path: Path, command: str | None = None) -> dict[str, Any]:
    """Merge recursor entries into ``hooks_path`` and write it atomically."""
    document = read_json_object(hooks_path)
    if document is None:
        if hooks_path.exists():
            raise ValueError(f"Refusing to overwrite unreadable hooks file: {hooks_path}")
        document = {}
    merged = merge_hook_entries(document, command or default_hook_command())
    atomic_write_json(hooks_path, merged)
    logger.info("Installed hooks into %s", hooks_path)
    return merged
