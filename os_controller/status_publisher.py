"""Status file consumed by menu bar style indicators."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from memory.stores.json_file import atomic_write_json

STATUS_WORKING = "working"
STATUS_IDLE = "idle"
STATUS_APPROVAL_NEEDED = "approval_needed"


def build_status_payload(
    status: str,
    timestamp: int,
    cursor_state: str | None = None,
    secondary_app: str | None = None,
    secondary_title: str | None = None,
    media_playing: bool | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": status, "timestamp": timestamp}
    if cursor_state is not None:
        payload["cursor_state"] = cursor_state
    if secondary_app is not None:
        payload["secondary_app"] = secondary_app
    if secondary_title is not None:
        payload["secondary_title"] = secondary_title
        # Older indicator builds read "window".
        payload["window"] = secondary_title
    if media_playing is not None:
        payload["media_playing"] = media_playing
    return payload


class StatusPublisher:
    """Atomically replaces the status file; never raises."""

    def __init__(self, status_path: Path) -> None:
        self.status_path = status_path
        self.logger = logging.getLogger("recursor.status")

    def publish(
        self,
        status: str,
        cursor_state: str | None = None,
        secondary_app: str | None = None,
        secondary_title: str | None = None,
        media_playing: bool | None = None,
    ) -> None:
        payload = build_status_payload(
            status,
            int(time.time()),
            cursor_state=cursor_state,
            secondary_app=secondary_app,
            secondary_title=secondary_title,
            media_playing=media_playing,
        )
        try:
            atomic_write_json(self.status_path, payload)
        except OSError as e:
            self.logger.warning("Failed to publish status %s: %s", status, e)
