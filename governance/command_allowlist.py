"""Read-only access to the editor's auto-run shell command allowlist."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

STORAGE_KEY = (
    "src.vs.platform.reactivestorage.browser.reactiveStorageServiceImpl"
    ".persistentStorage.applicationUser"
)


@dataclass
class AllowlistDecision:
    """Result of matching one command against the allowlist."""

    allowed: bool
    matched: str | None = None


def default_database_path(system: str, home: Path, app_name: str = "Cursor") -> Path:
    """Location of the editor's global state database for ``system``."""
    if system == "Darwin":
        base = home / "Library" / "Application Support"
    elif system == "Windows":
        base = Path(os.environ.get("APPDATA", str(home / "AppData" / "Roaming")))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", str(home / ".config")))
    return base / app_name / "User" / "globalStorage" / "state.vscdb"


def match_command(command: str, allowlist: list[str]) -> AllowlistDecision:
    """Prefix match that only accepts whole leading words."""
    trimmed = command.strip()
    for entry in allowlist:
        if not entry:
            continue
        if trimmed == entry:
            return AllowlistDecision(allowed=True, matched=entry)
        if trimmed.startswith(entry) and trimmed[len(entry)] in (" ", "\t"):
            return AllowlistDecision(allowed=True, matched=entry)
    return AllowlistDecision(allowed=False)


class CommandAllowlist:
    """Reads ``composerState.yoloCommandAllowlist`` from the editor database."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.logger = logging.getLogger("recursor.allowlist")

    def read(self) -> list[str]:
        """Return the allowlist, or an empty list when it cannot be read."""
        if not self.db_path.exists():
            self.logger.info("Editor state database not found: %s", self.db_path)
            return []
        engine = create_engine(
            f"sqlite+pysqlite:///file:{self.db_path.as_posix()}?mode=ro&uri=true", future=True
        )
        try:
            with engine.connect() as conn:
                raw = conn.execute(
                    text("SELECT value FROM ItemTable WHERE key = :key"),
                    {"key": STORAGE_KEY},
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.warning("Failed to query %s: %s", self.db_path, e)
            return []
        finally:
            engine.dispose()
        if raw is None:
            return []
        return self._extract(raw)

    def check(self, command: str) -> AllowlistDecision:
        return match_command(command, self.read())

    def _extract(self, raw: str | bytes) -> list[str]:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            self.logger.warning("Persistent storage value is not JSON: %s", e)
            return []
        if not isinstance(data, dict):
            return []
        composer = data.get("composerState")
        if not isinstance(composer, dict):
            return []
        entries = composer.get("yoloCommandAllowlist")
        if not isinstance(entries, list):
            return []
        return [entry for entry in entries if isinstance(entry, str)]
