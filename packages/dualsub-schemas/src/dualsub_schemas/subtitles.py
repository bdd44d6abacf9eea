"""Timed line and work-unit schemas."""

from __future__ import annotations

from pydantic import Field, ValidationInfo, field_validator, model_validator

from dualsub_schemas.base import BaseSchema, FrozenSchema
from dualsub_schemas.primitives import LineId, Milliseconds

type DurationBudget = dict[LineId, Milliseconds]


class Line(BaseSchema):
    """Single timed subtitle cue."""

    id: LineId = Field(..., description="Stable line identifier")
    start_ms: Milliseconds = Field(..., description="Cue start in milliseconds")
    end_ms: Milliseconds = Field(..., description="Cue end in milliseconds")
    source_text: str = Field("", description="Source language text")
    translated_text: str | None = Field(
        None, description="Machine translated text once resolved"
    )

    @field_validator("start_ms")
    @classmethod
    def _validate_start(cls, value: int, info: ValidationInfo) -> int:
        end_ms = info.data.get("end_ms")
        if end_ms is not None and value >= end_ms:
            raise ValueError("start_ms must be before end_ms")
        return value

    @field_validator("end_ms")
    @classmethod
    def _validate_end(cls, value: int, info: ValidationInfo) -> int:
        start_ms = info.data.get("start_ms")
        if start_ms is not None and start_ms >= value:
            raise ValueError("start_ms must be before end_ms")
        return value

    @property
    def duration_ms(self) -> int:
        """Return the displayed duration in milliseconds."""
        return self.end_ms - self.start_ms

    @property
    def is_resolved(self) -> bool:
        """Return True once the line carries a non-empty translation."""
        return bool(self.translated_text)


class Chunk(FrozenSchema):
    """Bounded group of lines submitted to the translator together."""

    lines: list[Line] = Field(..., min_length=1, description="Lines to translate")
    previous_context: list[Line] = Field(
        default_factory=list,
        description="Preceding lines sent as context only",
    )
    index: int = Field(..., ge=1, description="1-based chunk position")
    total_chunks: int = Field(..., ge=1, description="Number of chunks in the plan")

    @model_validator(mode="after")
    def _validate_position(self) -> Chunk:
        if self.index > self.total_chunks:
            raise ValueError("index cannot exceed total_chunks")
        return self

    @property
    def line_ids(self) -> list[int]:
        """Return the ids of the lines owned by this chunk, in order."""
        return [line.id for line in self.lines]
