"""Base interface for desktop window controllers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from executor.command_executor import run_command
from os_controller.status_publisher import StatusPublisher
from world_model.desktop_state import EditorProfile, WindowHandle

CommandRunner = Callable[[list[str]], tuple[int, str, str]]


class WindowControlError(RuntimeError):
    """A window query or focus change could not be carried out."""


def _default_runner(command: list[str]) -> tuple[int, str, str]:
    return run_command(command, cwd=None)


class WindowController(ABC):
    """Abstract window capability provider.

    Every operation may raise ``WindowControlError``; callers are expected
    to treat failures as non-fatal.
    """

    platform_name = "generic"

    def __init__(
        self,
        editor: EditorProfile | None = None,
        status_publisher: StatusPublisher | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.editor = editor or EditorProfile()
        self.status_publisher = status_publisher
        self.runner = runner or _default_runner
        self.logger = logging.getLogger(f"recursor.controller.{self.platform_name}")

    @abstractmethod
    def get_active_window(self) -> WindowHandle:
        """Return the frontmost window."""

    @abstractmethod
    def get_previous_window(self) -> WindowHandle:
        """Return the window that was frontmost before the editor."""

    @abstractmethod
    def focus_window(self, window: WindowHandle) -> None:
        """Bring ``window`` (or at least its application) to the front."""

    @abstractmethod
    def focus_editor(self) -> None:
        """Activate the editor application without choosing a window."""

    def focus_editor_window(self, window: WindowHandle) -> None:
        """Raise a specific editor window, falling back to the editor itself."""
        try:
            self.focus_window(window)
        except WindowControlError as e:
            self.logger.info("Editor window %s not focusable (%s); using editor", window.title, e)
            self.focus_editor()

    def pause_media_if_playing(self, hint: str) -> bool:
        return False

    def resume_media(self, hint: str) -> bool:
        return False

    def publish_status(
        self,
        status: str,
        cursor_state: str | None = None,
        secondary_app: str | None = None,
        secondary_title: str | None = None,
        media_playing: bool | None = None,
    ) -> None:
        if self.status_publisher is None:
            return
        self.status_publisher.publish(
            status,
            cursor_state=cursor_state,
            secondary_app=secondary_app,
            secondary_title=secondary_title,
            media_playing=media_playing,
        )

    def accessibility_help(self) -> str | None:
        """Hint printed by the permissions check when window access fails."""
        return None

    def _run(self, command: list[str]) -> str:
        code, stdout, stderr = self.runner(command)
        if code != 0:
            detail = stderr.strip() or stdout.strip() or f"exit code {code}"
            raise WindowControlError(f"{command[0]} failed: {detail}")
        return stdout.strip()
