"""Window manager for active/list/activate window calls via PyGetWindow."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from world_model.desktop_state import WindowHandle

if os.name == "nt":
    import ctypes
    from ctypes import wintypes

try:
    import pygetwindow as gw
except ImportError:
    gw = None

PROCESS_QUERY_LIMITED_INFORMATION = 0x1000


def process_id_for_window(hwnd: int) -> int:
    """Owning process id of a top-level window handle (Windows only)."""
    if os.name != "nt" or not hwnd:
        return 0
    pid = wintypes.DWORD()
    ctypes.windll.user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
    return int(pid.value)


def process_name(pid: int) -> str:
    """Executable stem for ``pid``, e.g. ``Cursor`` for Cursor.exe."""
    if os.name != "nt" or pid <= 0:
        return ""
    kernel32 = ctypes.windll.kernel32
    handle = kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
    if not handle:
        return ""
    try:
        size = wintypes.DWORD(1024)
        buffer = ctypes.create_unicode_buffer(size.value)
        if not kernel32.QueryFullProcessImageNameW(handle, 0, buffer, ctypes.byref(size)):
            return ""
        return Path(buffer.value).stem
    finally:
        kernel32.CloseHandle(handle)


class WindowManager:
    """Facade for managing desktop windows on Windows."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("recursor.window_manager")
        if not gw:
            self.logger.warning("pygetwindow is not installed.")

    def _check_available(self) -> None:
        if not gw:
            raise RuntimeError("Cannot execute window operation: pygetwindow missing.")

    def get_active_window(self) -> WindowHandle | None:
        self._check_available()
        window = gw.getActiveWindow()
        if not window:
            return None
        return self._to_handle(window)

    def list_windows(self) -> list[WindowHandle]:
        """Titled top-level windows, topmost first."""
        self._check_available()
        return [self._to_handle(w) for w in gw.getAllWindows() if w.title.strip()]

    def activate(self, handle: WindowHandle) -> bool:
        self._check_available()
        window = self._find(handle)
        if window is None:
            return False
        if window.isMinimized:
            window.restore()
        if not window.isActive:
            window.activate()
        return True

    def _find(self, handle: WindowHandle) -> Any | None:
        if handle.platform_id:
            for window in gw.getAllWindows():
                if str(getattr(window, "_hWnd", "")) == handle.platform_id:
                    return window
        if handle.title:
            matches = gw.getWindowsWithTitle(handle.title)
            if matches:
                return matches[0]
        return None

    def _to_handle(self, window: Any) -> WindowHandle:
        hwnd = int(getattr(window, "_hWnd", 0) or 0)
        pid = process_id_for_window(hwnd)
        app_name = process_name(pid) or window.title.rsplit(" - ", 1)[-1].strip() or "unknown"
        return WindowHandle(pid=pid, platform_id=str(hwnd) if hwnd else "", app_name=app_name, title=window.title)
