"""hooks.json installer tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.hooks_installer import HOOK_SUBCOMMANDS, install_hooks, merge_hook_entries


def test_fresh_install_registers_every_event(tmp_path: Path) -> None:
    path = tmp_path / "hooks.json"
    merged = install_hooks(path, "recursor")

    assert merged == json.loads(path.read_text(encoding="utf-8"))
    assert merged["version"] == 1
    assert set(merged["hooks"]) == set(HOOK_SUBCOMMANDS)
    assert merged["hooks"]["beforeSubmitPrompt"] == [{"command": "recursor save"}]
    assert merged["hooks"]["afterShellExecution"] == [{"command": "recursor after-shell"}]


def test_foreign_entries_survive_and_reinstall_does_not_duplicate() -> None:
    document = {
        "version": 1,
        "hooks": {
            "stop": [{"command": "notify-send done"}, {"command": "/old/path/recursor restore"}],
            "beforeReadFile": [{"command": "audit-reads"}],
        },
    }

    once = merge_hook_entries(document, "/new/recursor")
    twice = merge_hook_entries(once, "/new/recursor")

    assert twice == once
    assert once["hooks"]["stop"] == [
        {"command": "notify-send done"},
        {"command": "/new/recursor restore"},
    ]
    assert once["hooks"]["beforeReadFile"] == [{"command": "audit-reads"}]
    assert document["hooks"]["stop"][1] == {"command": "/old/path/recursor restore"}


def test_unreadable_hooks_file_is_not_overwritten(tmp_path: Path) -> None:
    path = tmp_path / "hooks.json"
    path.write_text("{oops", encoding="utf-8")

    with pytest.raises(ValueError):
        install_hooks(path, "recursor")
    assert path.read_text(encoding="utf-8") == "{oops"
