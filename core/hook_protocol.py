"""Hook wire models: one JSON object in on stdin, one JSON object out on stdout."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_CONVERSATION_ID = "default"

logger = logging.getLogger("recursor.protocol")


class HookInput(BaseModel):
    """Fields every hook event carries; all optional."""

    model_config = ConfigDict(extra="ignore")

    conversation_id: str | None = None
    generation_id: str | None = None
    model: str | None = None
    hook_event_name: str | None = None
    cursor_version: str | None = None
    workspace_roots: list[str] = Field(default_factory=list)
    user_email: str | None = None

    @field_validator("workspace_roots", mode="before")
    @classmethod
    def _null_roots(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def conversation_key(self) -> str:
        if self.conversation_id and self.conversation_id.strip():
            return self.conversation_id
        return DEFAULT_CONVERSATION_ID


class BeforeSubmitPromptInput(HookInput):
    prompt: str | None = None


class StopInput(HookInput):
    status: str | None = None
    loop_count: int = 0

    @field_validator("loop_count", mode="before")
    @classmethod
    def _null_count(cls, value: Any) -> Any:
        return 0 if value is None else value


class BeforeShellInput(HookInput):
    command: str | None = None
    cwd: str | None = None


class AfterShellInput(HookInput):
    command: str | None = None
    output: str | None = None
    duration: float | None = None


class HookOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class BeforeSubmitPromptOutput(HookOutput):
    continue_: bool = Field(default=True, alias="continue")
    user_message: str | None = None


class StopOutput(HookOutput):
    followup_message: str | None = None


class ShellPermissionOutput(HookOutput):
    permission: str = "allow"
    user_message: str | None = None
    agent_message: str | None = None


class AfterShellOutput(HookOutput):
    pass


InputT = TypeVar("InputT", bound=HookInput)


def parse_hook_input(model: type[InputT], raw: str) -> InputT:
    """Parse ``raw`` into ``model``, degrading to defaults instead of failing."""
    if not raw.strip():
        return model()
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Hook input is not JSON (%s); using defaults", e)
        return model()
    if not isinstance(data, dict):
        logger.warning("Hook input is %s, not an object; using defaults", type(data).__name__)
        return model()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("Hook input failed validation; keeping conversation id only: %s", e)
        conversation_id = data.get("conversation_id")
        return model(conversation_id=conversation_id if isinstance(conversation_id, str) else None)


def read_hook_input(model: type[InputT], stream: TextIO | None = None) -> InputT:
    """Read one hook payload; interactive or closed stdin yields defaults."""
    stream = stream if stream is not None else sys.stdin
    if stream is None:
        return model()
    try:
        if stream.isatty():
            return model()
        raw = stream.read()
    except (OSError, ValueError) as e:
        logger.warning("Could not read hook input: %s", e)
        return model()
    return parse_hook_input(model, raw)
