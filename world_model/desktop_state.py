"""Desktop window identity models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

DEFAULT_EDITOR_TOKEN = "cursor"


class WindowHandle(BaseModel):
    """Identity of a desktop window at a point in time."""

    model_config = ConfigDict(frozen=True)

    pid: int = 0
    platform_id: str = ""
    app_name: str
    title: str = ""

    def is_agent_editor(self, token: str = DEFAULT_EDITOR_TOKEN) -> bool:
        """True when the owning application is the agent's editor."""
        return token.lower() in self.app_name.lower()

    def editor_project_name(self, token: str = DEFAULT_EDITOR_TOKEN) -> str | None:
        """Extract the workspace name from titles like ``file - Project - Cursor``.

        The file segment changes as the agent opens files while the project
        segment stays stable, so it is the better key for finding the window.
        """
        parts = [part.strip() for part in self.title.split(" - ")]
        if parts and token.lower() in parts[-1].lower():
            parts = parts[:-1]
        parts = [part for part in parts if part]
        if not parts:
            return None
        return parts[-1]

    def describe(self) -> str:
        if self.title:
            return f"{self.app_name} ({self.title})"
        return self.app_name


class EditorProfile(BaseModel):
    """How the host editor identifies itself to the window system."""

    model_config = ConfigDict(frozen=True)

    token: str = DEFAULT_EDITOR_TOKEN
    app_name: str = "Cursor"
