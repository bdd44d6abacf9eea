"""Primitive types and enums shared across dualsub schemas."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import Field

ISO_8601_PATTERN = (
    r"^\d{4}-\d{2}-\d{2}T"
    r"\d{2}:\d{2}:\d{2}"
    r"(?:\.\d+)?"
    r"(?:Z|[+-]\d{2}:\d{2})$"
)
EVENT_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"

type RunId = UUID
type LineId = Annotated[int, Field(ge=0)]
type Milliseconds = Annotated[int, Field(ge=0)]
type Timestamp = Annotated[str, Field(pattern=ISO_8601_PATTERN)]
type EventName = Annotated[str, Field(pattern=EVENT_NAME_PATTERN)]

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]


class PipelinePhase(StrEnum):
    """Stages of a single translation run."""

    BUDGET = "budget"
    TRANSLATE = "translate"
    VERIFY = "verify"
    OPTIMIZE = "optimize"
    ALIGN = "align"


class RunStatus(StrEnum):
    """Overall run status values."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationReason(StrEnum):
    """Why a run stopped dispatching work."""

    USER = "user"
    TERMINAL_ERROR = "terminal_error"


class LogLevel(StrEnum):
    """Log level values for JSONL logs."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogKind(StrEnum):
    """Coarse log categories shown in the per-file activity log."""

    INFO = "info"
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"


class LogSinkType(StrEnum):
    """Supported log sink types."""

    CONSOLE = "console"
    FILE = "file"
    NOOP = "noop"
