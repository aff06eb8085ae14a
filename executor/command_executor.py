"""Command execution wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path


def run_command(
    command: list[str], cwd: Path | None = None, timeout: float | None = 10.0
) -> tuple[int, str, str]:
    """Run command and return (exit_code, stdout, stderr).

    A missing executable is reported as exit code 127, a timeout as 124.
    """
    try:
        proc = subprocess.run(
            command, cwd=cwd, capture_output=True, text=True, timeout=timeout
        )
    except FileNotFoundError as e:
        return 127, "", str(e)
    except subprocess.TimeoutExpired:
        return 124, "", f"Timed out after {timeout}s: {command[0]}"
    return proc.returncode, proc.stdout, proc.stderr
