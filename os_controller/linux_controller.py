"""Linux (X11) controller built on xdotool, wmctrl and xprop."""

from __future__ import annotations

from pathlib import Path

from os_controller.base_controller import CommandRunner, WindowController, WindowControlError
from os_controller.status_publisher import StatusPublisher
from world_model.desktop_state import EditorProfile, WindowHandle


def parse_stacking_ids(output: str) -> list[str]:
    """Window ids from ``xprop -root _NET_CLIENT_LIST_STACKING``, bottom to top."""
    if "#" not in output:
        return []
    ids: list[str] = []
    for token in output.split("#", 1)[1].split(","):
        token = token.strip()
        if not token:
            continue
        try:
            ids.append(str(int(token, 16)))
        except ValueError:
            continue
    return ids


def parse_wmctrl_list(output: str) -> list[tuple[str, int, str]]:
    """Rows of ``wmctrl -l -p`` as ``(decimal_id, pid, title)``."""
    rows: list[tuple[str, int, str]] = []
    for line in output.splitlines():
        parts = line.split(None, 4)
        if len(parts) < 4:
            continue
        try:
            window_id = str(int(parts[0], 16))
            pid = int(parts[2])
        except ValueError:
            continue
        rows.append((window_id, pid, parts[4] if len(parts) > 4 else ""))
    return rows


class LinuxController(WindowController):
    """X11 window control. Wayland sessions are unsupported."""

    platform_name = "linux"

    def __init__(
        self,
        editor: EditorProfile | None = None,
        status_publisher: StatusPublisher | None = None,
        runner: CommandRunner | None = None,
        proc_root: Path = Path("/proc"),
    ) -> None:
        super().__init__(editor=editor, status_publisher=status_publisher, runner=runner)
        self.proc_root = proc_root

    def get_active_window(self) -> WindowHandle:
        return self._describe(self._run(["xdotool", "getactivewindow"]))

    def get_previous_window(self) -> WindowHandle:
        stacking = parse_stacking_ids(self._run(["xprop", "-root", "_NET_CLIENT_LIST_STACKING"]))
        try:
            active = self._run(["xdotool", "getactivewindow"])
        except WindowControlError:
            active = ""
        for window_id in reversed(stacking):
            if window_id == active:
                continue
            handle = self._describe(window_id)
            if handle.is_agent_editor(self.editor.token):
                continue
            return handle
        raise WindowControlError("No previous non-editor window in stacking order")

    def focus_window(self, window: WindowHandle) -> None:
        if window.platform_id:
            self._activate(window.platform_id)
            return
        if window.title:
            self._run(["wmctrl", "-a", window.title])
            return
        raise WindowControlError(f"No way to address window {window.describe()}")

    def focus_editor(self) -> None:
        candidates = self._editor_windows()
        if candidates:
            self._activate(candidates[0][0])
            return
        found = self._run(["xdotool", "search", "--name", self.editor.app_name])
        ids = found.split()
        if not ids:
            raise WindowControlError(f"No {self.editor.app_name} window found")
        self._activate(ids[0])

    def focus_editor_window(self, window: WindowHandle) -> None:
        """Match by project name, then by window id, then any editor window."""
        candidates = self._editor_windows()
        project = window.editor_project_name(self.editor.token)
        if project:
            for window_id, _, title in candidates:
                if project in title:
                    self._activate(window_id)
                    return
        if window.platform_id and any(row[0] == window.platform_id for row in candidates):
            self._activate(window.platform_id)
            return
        self.focus_editor()

    def _activate(self, window_id: str) -> None:
        try:
            self._run(["xdotool", "windowactivate", "--sync", window_id])
        except WindowControlError as e:
            self.logger.info("xdotool activation failed (%s); trying wmctrl", e)
            self._run(["wmctrl", "-i", "-a", hex(int(window_id))])

    def _describe(self, window_id: str) -> WindowHandle:
        window_id = window_id.strip()
        try:
            pid = int(self._run(["xdotool", "getwindowpid", window_id]))
        except (WindowControlError, ValueError):
            pid = 0
        try:
            title = self._run(["xdotool", "getwindowname", window_id])
        except WindowControlError:
            title = ""
        return WindowHandle(pid=pid, platform_id=window_id, app_name=self._app_name(pid), title=title)

    def _app_name(self, pid: int) -> str:
        if pid <= 0:
            return "unknown"
        try:
            comm = (self.proc_root / str(pid) / "comm").read_text(encoding="utf-8").strip()
        except OSError:
            return "unknown"
        return comm or "unknown"

    def _editor_windows(self) -> list[tuple[str, int, str]]:
        try:
            listing = self._run(["wmctrl", "-l", "-p"])
        except WindowControlError as e:
            self.logger.info("wmctrl listing failed: %s", e)
            return []
        return [
            row
            for row in parse_wmctrl_list(listing)
            if self.editor.token in self._app_name(row[1]).lower()
        ]
