"""Structured JSONL hook-event audit logger."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Writes one JSON line per handled hook event."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.logger = logging.getLogger("recursor.audit")

    def log(
        self,
        hook: str,
        conversation_id: str,
        action: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Append one JSONL event. Failures to write are logged and dropped."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "hook": hook,
            "conversation_id": conversation_id,
            "action": action,
            "details": details or {},
        }
        line = json.dumps(event, ensure_ascii=True, default=str)
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except OSError as e:
            self.logger.warning("Could not append audit event to %s: %s", self.log_path, e)
        self.logger.info(line)
