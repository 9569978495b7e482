"""Pydantic v2 models for the streaming generation pipeline.

Covers the records decoded from the upstream NDJSON stream, the events pushed
to clients, and the lifecycle state and outcome of one relay run.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GeneratedRecord(BaseModel):
    """One decoded line of an Ollama ``/api/generate`` stream."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model_name: str = Field(default="", alias="model")
    created_at: str = Field(default="")
    text_fragment: str = Field(default="", alias="response")
    is_final: bool = Field(default=False, alias="done")
    error: Optional[str] = Field(default=None, description="Error reported mid-stream by the server")

    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None

    @field_validator("model_name", "created_at", "text_fragment", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_final", mode="before")
    @classmethod
    def _null_as_false(cls, value: Any) -> Any:
        return False if value is None else value


class EventName(str, Enum):
    """Named events of the downstream server-sent-events protocol."""

    CODE_CHUNK = "code-chunk"
    ERROR = "error"
    COMPLETE = "complete"
    NO_CODE = "no-code"

    @property
    def is_terminal(self) -> bool:
        return self is not EventName.CODE_CHUNK


class RelayEvent(BaseModel):
    """A single event pushed to the client."""

    name: EventName
    data: str = ""


class RelayState(str, Enum):
    """Lifecycle of one :class:`~codestream.streaming.relay.GenerationRelay`."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETING = "completing"
    COMPLETED = "completed"
    FAILED = "failed"


class RelayOutcome(BaseModel):
    """What a finished relay run produced.

    ``text`` holds everything accumulated before the run ended, including the
    partial output of a failed run.
    """

    state: RelayState
    text: str = ""
    error: Optional[str] = None
    chunks: int = Field(default=0, ge=0, description="code-chunk events accepted")
    detached: bool = Field(default=False, description="Client went away before the end")

    @property
    def succeeded(self) -> bool:
        return self.state is RelayState.COMPLETED

    @property
    def empty(self) -> bool:
        return self.succeeded and not self.text
