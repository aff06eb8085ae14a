"""Platform controller selection."""

from __future__ import annotations

import platform

from os_controller.base_controller import WindowController
from os_controller.linux_controller import LinuxController
from os_controller.macos_controller import MacOSController
from os_controller.status_publisher import StatusPublisher
from os_controller.windows_controller import WindowsController
from world_model.desktop_state import EditorProfile


def create_controller(
    editor: EditorProfile,
    status_publisher: StatusPublisher | None = None,
    system: str | None = None,
) -> WindowController:
    """Build the controller for ``system`` (defaults to the running OS)."""
    system = system or platform.system()
    if system == "Darwin":
        return MacOSController(editor=editor, status_publisher=status_publisher)
    if system == "Windows":
        return WindowsController(editor=editor, status_publisher=status_publisher)
    return LinuxController(editor=editor, status_publisher=status_publisher)
