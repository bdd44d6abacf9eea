"""JSONL log entry schema for pipeline events."""

from __future__ import annotations

from pydantic import Field

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.primitives import (
    EventName,
    JsonValue,
    LogKind,
    LogLevel,
    PipelinePhase,
    RunId,
    Timestamp,
)


class LogEntry(BaseSchema):
    """Single log line in JSONL format."""

    timestamp: Timestamp = Field(
        ..., description="ISO-8601 timestamp for the log entry"
    )
    level: LogLevel = Field(..., description="Log level")
    kind: LogKind = Field(LogKind.INFO, description="Activity log category")
    event: EventName = Field(..., description="Event name")
    run_id: RunId = Field(..., description="Translation run identifier")
    phase: PipelinePhase | None = Field(None, description="Pipeline phase if any")
    message: str = Field(..., min_length=1, description="Log message")
    data: dict[str, JsonValue] | None = Field(None, description="Structured event data")
