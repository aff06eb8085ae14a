"""Top-level application orchestrator."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from core.hook_engine import EngineSettings, HookEngine
from core.logging_config import configure_logging
from core.policy_runtime import (
    DEFAULT_CONFIG,
    load_effective_config,
    resolve_home,
    resolve_paths,
)
from executor.failsafe import FailsafeScheduler
from governance.audit_logger import AuditLogger
from memory.stores.conversation_store import ConversationStore
from os_controller.base_controller import WindowController
from os_controller.controller_factory import create_controller
from os_controller.status_publisher import StatusPublisher
from world_model.desktop_state import EditorProfile


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    paths: dict[str, Path]
    home: Path
    editor: EditorProfile
    store: ConversationStore
    controller: WindowController
    scheduler: FailsafeScheduler
    audit: AuditLogger
    engine: HookEngine


class Orchestrator:
    """Creates and wires runtime components for one CLI invocation."""

    def __init__(
        self,
        home: Path | None = None,
        config_path: Path | None = None,
        controller_factory: Callable[..., WindowController] | None = None,
    ) -> None:
        self.home = resolve_home(home)
        self.config_path = config_path
        self.controller_factory = controller_factory or create_controller
        self.logger = logging.getLogger("recursor.orchestrator")

    def build(self) -> RuntimeBundle:
        config, config_error = self._load_config()
        paths = resolve_paths(self.home, config)
        configure_logging(paths["log_file"], str(config.get("logging", {}).get("level", "INFO")))
        if config_error:
            # Hooks must keep working with a broken config file.
            self.logger.warning("Ignoring invalid config, using defaults: %s", config_error)

        editor_cfg = config.get("editor", {})
        editor = EditorProfile(
            token=str(editor_cfg.get("app_token", "cursor")).lower(),
            app_name=str(editor_cfg.get("app_name", "Cursor")),
        )
        stale_after = timedelta(seconds=float(config.get("state", {}).get("stale_after_seconds", 3600)))
        store = ConversationStore(paths["state_file"], stale_after=stale_after)
        controller = self.controller_factory(editor, StatusPublisher(paths["status_file"]))
        scheduler = FailsafeScheduler()
        audit = AuditLogger(paths["event_log"])
        engine = HookEngine(
            store=store,
            controller=controller,
            scheduler=scheduler,
            audit=audit,
            settings=EngineSettings.from_config(config),
        )
        return RuntimeBundle(
            config=config,
            paths=paths,
            home=self.home,
            editor=editor,
            store=store,
            controller=controller,
            scheduler=scheduler,
            audit=audit,
            engine=engine,
        )

    def _load_config(self) -> tuple[dict[str, Any], str | None]:
        try:
            return load_effective_config(self.home, self.config_path), None
        except (OSError, ValueError, ValidationError, yaml.YAMLError) as e:
            return copy.deepcopy(DEFAULT_CONFIG), str(e)
