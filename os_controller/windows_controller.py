"""Windows controller backed by the PyGetWindow facade."""

from __future__ import annotations

from os_controller.base_controller import CommandRunner, WindowController, WindowControlError
from os_controller.status_publisher import StatusPublisher
from os_controller.window_manager import WindowManager
from world_model.desktop_state import EditorProfile, WindowHandle


class WindowsController(WindowController):
    """Win32 window control through z-ordered window enumeration."""

    platform_name = "windows"

    def __init__(
        self,
        editor: EditorProfile | None = None,
        status_publisher: StatusPublisher | None = None,
        runner: CommandRunner | None = None,
        window_manager: WindowManager | None = None,
    ) -> None:
        super().__init__(editor=editor, status_publisher=status_publisher, runner=runner)
        self.window_manager = window_manager or WindowManager()

    def get_active_window(self) -> WindowHandle:
        window = self._call(self.window_manager.get_active_window)
        if window is None:
            raise WindowControlError("No active window")
        return window

    def get_previous_window(self) -> WindowHandle:
        active = self._call(self.window_manager.get_active_window)
        for window in self._call(self.window_manager.list_windows):
            if active is not None and window.platform_id == active.platform_id:
                continue
            if window.is_agent_editor(self.editor.token):
                continue
            return window
        raise WindowControlError("No previous non-editor window in z-order")

    def focus_window(self, window: WindowHandle) -> None:
        if not self._call(self.window_manager.activate, window):
            raise WindowControlError(f"Window not found: {window.describe()}")

    def focus_editor(self) -> None:
        for window in self._editor_windows():
            if self._call(self.window_manager.activate, window):
                return
        raise WindowControlError(f"No {self.editor.app_name} window found")

    def focus_editor_window(self, window: WindowHandle) -> None:
        project = window.editor_project_name(self.editor.token)
        if project:
            for candidate in self._editor_windows():
                if project in candidate.title and self._call(self.window_manager.activate, candidate):
                    return
        super().focus_editor_window(window)

    def _editor_windows(self) -> list[WindowHandle]:
        return [
            w for w in self._call(self.window_manager.list_windows)
            if w.is_agent_editor(self.editor.token)
        ]

    @staticmethod
    def _call(func, *args):
        try:
            return func(*args)
        except WindowControlError:
            raise
        except Exception as e:
            raise WindowControlError(str(e)) from e
