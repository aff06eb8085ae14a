"""System inspection helpers for basic runtime diagnostics."""

from __future__ import annotations

import os
import platform
import shutil
import sys

WINDOW_TOOLS = {
    "Darwin": ["osascript", "lsappinfo"],
    "Linux": ["xdotool", "wmctrl", "xprop"],
}


def inspect_system() -> dict[str, str]:
    """Return lightweight host information."""
    info = {
        "platform": platform.platform(),
        "system": platform.system(),
        "python_version": sys.version.split()[0],
        "executable": sys.executable,
    }
    if platform.system() == "Linux":
        info["display"] = os.environ.get("DISPLAY", "")
        info["session_type"] = os.environ.get("XDG_SESSION_TYPE", "")
    return info


def missing_window_tools(system: str | None = None) -> list[str]:
    """Command-line tools the controller for ``system`` needs but cannot find."""
    system = system or platform.system()
    return [tool for tool in WINDOW_TOOLS.get(system, []) if shutil.which(tool) is None]
