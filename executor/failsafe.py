"""Detached, self-invoking delayed focus check.

Every hook runs in its own short-lived process, so a pending shell
approval cannot be watched in-process. Instead ``before-shell`` spawns a
detached copy of this program running ``check-idle``; that process sleeps
for the delay itself and then re-validates the persisted entry before
acting. Arguments are passed as a list, never through a shell.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from collections.abc import Callable
from typing import Any

CHECK_IDLE_COMMAND = "check-idle"
CLI_MODULE = "ui.cli.cli"

CREATE_NEW_PROCESS_GROUP = 0x00000200
CREATE_NO_WINDOW = 0x08000000


def build_check_idle_argv(
    conversation_id: str, delay: float, executable: str | None = None
) -> list[str]:
    """Command line for the delayed check; ``--`` keeps odd ids out of option parsing."""
    return [
        executable or sys.executable,
        "-m",
        CLI_MODULE,
        CHECK_IDLE_COMMAND,
        "--delay",
        f"{delay:g}",
        "--",
        conversation_id,
    ]


def detached_popen_kwargs(windows: bool | None = None) -> dict[str, Any]:
    """Popen options that cut the child loose from the hook process."""
    if windows is None:
        windows = os.name == "nt"
    kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if windows:
        startupinfo = subprocess.STARTUPINFO()  # type: ignore[attr-defined]
        startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW  # type: ignore[attr-defined]
        startupinfo.wShowWindow = subprocess.SW_HIDE  # type: ignore[attr-defined]
        kwargs["startupinfo"] = startupinfo
        kwargs["creationflags"] = CREATE_NEW_PROCESS_GROUP | CREATE_NO_WINDOW
    else:
        kwargs["start_new_session"] = True
    return kwargs


class FailsafeScheduler:
    """Fire-and-forget spawner for ``check-idle`` processes."""

    def __init__(
        self,
        popen: Callable[..., Any] = subprocess.Popen,
        executable: str | None = None,
    ) -> None:
        self.popen = popen
        self.executable = executable
        self.logger = logging.getLogger("recursor.failsafe")

    def schedule(self, conversation_id: str, delay: float) -> bool:
        """Spawn the delayed check. Returns False if the spawn failed."""
        argv = build_check_idle_argv(conversation_id, delay, self.executable)
        try:
            self.popen(argv, **detached_popen_kwargs())
        except OSError as e:
            self.logger.warning("Failed to spawn failsafe for %s: %s", conversation_id, e)
            return False
        self.logger.info("Failsafe for %s armed (%ss)", conversation_id, f"{delay:g}")
        return True


def run_delayed_check(
    check: Callable[[str, float], bool],
    conversation_id: str,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Sleep in-process, then run ``check``; the check re-validates elapsed time."""
    if delay > 0:
        sleep(delay)
    return check(conversation_id, delay)
