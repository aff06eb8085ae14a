"""macOS controller driven by AppleScript and lsappinfo."""

from __future__ import annotations

from os_controller.base_controller import WindowController, WindowControlError
from world_model.desktop_state import WindowHandle

CHROME = "Google Chrome"
FALLBACK_APP = "Finder"
ACCESSIBILITY_PANE = "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility"

_FRONT_WINDOW_SCRIPT = """
tell application "System Events"
    set frontApp to first application process whose frontmost is true
    set appName to name of frontApp
    set appPID to unix id of frontApp
    set windowTitle to ""
    set windowIndex to 1
    try
        set frontWin to front window of frontApp
        set windowTitle to name of frontWin
        set windowIndex to index of frontWin
    end try
    return appName & "|" & appPID & "|" & windowTitle & "|" & windowIndex
end tell
"""

_APP_WINDOW_SCRIPT = """
tell application "System Events"
    try
        set targetProc to application process "{app}"
        set appPID to unix id of targetProc
        set windowTitle to ""
        set windowIndex to 1
        try
            set frontWin to front window of targetProc
            set windowTitle to name of frontWin
            set windowIndex to index of frontWin
        end try
        return "{app}" & "|" & appPID & "|" & windowTitle & "|" & windowIndex
    on error
        return "error"
    end try
end tell
"""

_TITLE_BY_PID_SCRIPT = """
tell application "System Events"
    set targetProc to first application process whose unix id is {pid}
    repeat with win in (every window of targetProc)
        try
            set winName to name of win
            if winName is not "" then
                return winName
            end if
        end try
    end repeat
    return ""
end tell
"""

_RAISE_BY_PID_SCRIPT = """
tell application "System Events"
    set targetProc to first application process whose unix id is {pid}
    set frontmost of targetProc to true
    delay 0.1
    set allWins to every window of targetProc
    if "{title}" is not "" then
        repeat with win in allWins
            try
                if name of win contains "{title}" then
                    perform action "AXRaise" of win
                    return "ok"
                end if
            end try
        end repeat
    end if
    repeat with win in allWins
        try
            perform action "AXRaise" of win
            return "ok"
        end try
    end repeat
    return "ok"
end tell
"""

_RAISE_BY_TITLE_SCRIPT = """
tell application "System Events"
    tell process "{app}"
        set frontmost to true
        try
            perform action "AXRaise" of (first window whose name contains "{title}")
        end try
    end tell
end tell
tell application "{app}" to activate
"""

_ACTIVATE_SCRIPT = 'tell application "{app}" to activate'

_EDITOR_WINDOW_SCRIPT = """
tell application "System Events"
    tell process "{app}"
        set frontmost to true
        try
            repeat with win in (every window)
                if name of win contains "{needle}" then
                    perform action "AXRaise" of win
                    tell application "{app}" to activate
                    return "found"
                end if
            end repeat
        end try
    end tell
end tell
return "not_found"
"""

_MEDIA_SCRIPT = """
tell application "Google Chrome"
    repeat with win in (every window)
        set activeTab to active tab of win
        if (URL of activeTab) contains "youtube.com/watch" then
            try
                set jsResult to execute activeTab javascript "(function() {{ var v = document.querySelector('video'); {body} }})();"
                if jsResult is "{hit}" then
                    return "{hit}"
                end if
            end try
        end if
    end repeat
    return "none"
end tell
"""

_PAUSE_JS = "if (v && !v.paused) { v.pause(); return 'paused'; } return 'idle';"
_RESUME_JS = "if (v && v.paused) { v.play(); return 'resumed'; } return 'idle';"


def quote_applescript(value: str) -> str:
    """Escape ``value`` for interpolation inside an AppleScript string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def parse_window_info(raw: str) -> WindowHandle:
    """Parse ``app|pid|title|index``; the title itself may contain ``|``."""
    parts = raw.strip().split("|", 2)
    if len(parts) < 2 or not parts[0]:
        raise WindowControlError(f"Unexpected AppleScript output: {raw!r}")
    app_name, pid_text = parts[0], parts[1]
    title = parts[2] if len(parts) > 2 else ""
    index = "1"
    if "|" in title:
        title, index = title.rsplit("|", 1)
    try:
        pid = int(pid_text)
    except ValueError as e:
        raise WindowControlError(f"Unexpected pid in AppleScript output: {raw!r}") from e
    return WindowHandle(pid=pid, platform_id=f"{pid}:{index or '1'}", app_name=app_name, title=title)


def parse_bring_forward_order(line: str) -> list[tuple[str, str]]:
    """Extract ``(app_name, asn)`` pairs from lsappinfo's bringForwardOrder line."""
    pairs: list[tuple[str, str]] = []
    chunks = line.split('"')
    # Quoted names sit at odd indexes; the ASN is the first token after each.
    for position in range(1, len(chunks) - 1, 2):
        name = chunks[position]
        tail = chunks[position + 1].split()
        asn = tail[0] if tail else ""
        if name:
            pairs.append((name, asn))
    return pairs


def parse_asn_info(text: str) -> tuple[int, str]:
    """Return ``(pid, parent_asn)`` from ``lsappinfo info`` output."""
    pid = 0
    parent_asn = ""
    for line in text.splitlines():
        stripped = line.strip()
        if "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        key = key.strip().strip('"')
        if key == "pid":
            try:
                pid = int(value.strip().split()[0])
            except (IndexError, ValueError):
                pid = 0
        elif key == "parentASN":
            parent_asn = value.strip().strip('"')
    return pid, parent_asn


class MacOSController(WindowController):
    """Window control through System Events."""

    platform_name = "macos"

    def _osascript(self, script: str) -> str:
        return self._run(["osascript", "-e", script])

    def get_active_window(self) -> WindowHandle:
        return parse_window_info(self._osascript(_FRONT_WINDOW_SCRIPT))

    def get_previous_window(self) -> WindowHandle:
        try:
            metainfo = self._run(["lsappinfo", "metainfo"])
        except WindowControlError as e:
            self.logger.info("lsappinfo unavailable (%s); falling back to %s", e, FALLBACK_APP)
            return self._app_window(FALLBACK_APP)

        order_line = next(
            (line for line in metainfo.splitlines() if "bringForwardOrder" in line), ""
        )
        # The first entry is the frontmost app, i.e. the editor itself.
        for app_name, asn in parse_bring_forward_order(order_line)[1:]:
            if self.editor.token in app_name.lower():
                continue
            if app_name == CHROME:
                pid, owned_by_editor = self._asn_owner(asn)
                if owned_by_editor:
                    continue
                if pid > 0:
                    title = self._osascript(_TITLE_BY_PID_SCRIPT.format(pid=pid))
                    return WindowHandle(pid=pid, platform_id=f"{pid}:1", app_name=CHROME, title=title)
            return self._app_window(app_name)
        return self._app_window(FALLBACK_APP)

    def focus_window(self, window: WindowHandle) -> None:
        app = quote_applescript(window.app_name)
        title = quote_applescript(window.title)
        if window.app_name == CHROME and window.pid > 0:
            # Target by pid so the editor's embedded browser helper is never hit.
            try:
                self._osascript(_RAISE_BY_PID_SCRIPT.format(pid=window.pid, title=title))
                return
            except WindowControlError as e:
                self.logger.info("Raise by pid failed for %s: %s", window.describe(), e)
        if window.title:
            try:
                self._osascript(_RAISE_BY_TITLE_SCRIPT.format(app=app, title=title))
                return
            except WindowControlError as e:
                self.logger.info("Raise by title failed for %s: %s", window.describe(), e)
        self._osascript(_ACTIVATE_SCRIPT.format(app=app))

    def focus_editor(self) -> None:
        self._osascript(_ACTIVATE_SCRIPT.format(app=quote_applescript(self.editor.app_name)))

    def focus_editor_window(self, window: WindowHandle) -> None:
        """Match by project name, then by full title, then plain activation."""
        needles = [window.editor_project_name(self.editor.token), window.title]
        app = quote_applescript(self.editor.app_name)
        for needle in needles:
            if not needle:
                continue
            script = _EDITOR_WINDOW_SCRIPT.format(app=app, needle=quote_applescript(needle))
            try:
                if self._osascript(script) == "found":
                    return
            except WindowControlError as e:
                self.logger.info("Editor window lookup for %r failed: %s", needle, e)
        self.focus_editor()

    def pause_media_if_playing(self, hint: str) -> bool:
        return self._media("paused", _PAUSE_JS)

    def resume_media(self, hint: str) -> bool:
        return self._media("resumed", _RESUME_JS)

    def accessibility_help(self) -> str | None:
        try:
            self._run(["open", ACCESSIBILITY_PANE])
        except WindowControlError as e:
            self.logger.info("Could not open accessibility settings: %s", e)
        return (
            "Grant Accessibility access under System Settings > Privacy & Security > "
            "Accessibility for recursor or the terminal that runs it."
        )

    def _media(self, hit: str, body: str) -> bool:
        try:
            return self._osascript(_MEDIA_SCRIPT.format(body=body, hit=hit)) == hit
        except WindowControlError as e:
            self.logger.debug("Media script failed: %s", e)
            return False

    def _app_window(self, app_name: str) -> WindowHandle:
        raw = self._osascript(_APP_WINDOW_SCRIPT.format(app=quote_applescript(app_name)))
        if raw == "error":
            raise WindowControlError(f"Could not get window info for {app_name}")
        return parse_window_info(raw)

    def _asn_owner(self, asn: str) -> tuple[int, bool]:
        """Return the pid behind ``asn`` and whether its parent is the editor."""
        try:
            pid, parent_asn = parse_asn_info(self._run(["lsappinfo", "info", asn]))
        except WindowControlError:
            return 0, False
        if not parent_asn or parent_asn == "ASN:0x0-0x0:":
            return pid, False
        try:
            parent = self._run(["lsappinfo", "info", parent_asn])
        except WindowControlError:
            return pid, False
        return pid, self.editor.app_name in parent
