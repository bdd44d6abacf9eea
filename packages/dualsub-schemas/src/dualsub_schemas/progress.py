"""Progress update schema for streaming run status."""

from __future__ import annotations

from pydantic import Field, model_validator

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.events import ProgressEvent
from dualsub_schemas.primitives import PipelinePhase, RunId, RunStatus, Timestamp


class ProgressUpdate(BaseSchema):
    """Incremental progress update suitable for logs or streaming."""

    run_id: RunId = Field(..., description="Run identifier")
    event: ProgressEvent = Field(..., description="Progress event name")
    timestamp: Timestamp = Field(..., description="Update timestamp")
    phase: PipelinePhase | None = Field(None, description="Associated phase")
    status: RunStatus = Field(..., description="Run status at this point")
    percent: int = Field(..., ge=0, le=100, description="Processed percentage")
    message: str = Field(..., min_length=1, description="Status message")
    completed_lines: int = Field(..., ge=0, description="Processed line count")
    total_lines: int = Field(..., ge=0, description="Total line count")
    missing_lines: int | None = Field(
        None, ge=0, description="Unresolved line count when known"
    )

    @model_validator(mode="after")
    def _validate_counts(self) -> ProgressUpdate:
        if self.completed_lines > self.total_lines:
            raise ValueError("completed_lines cannot exceed total_lines")
        return self


def compute_percent(completed_lines: int, total_lines: int) -> int:
    """Return the rounded processed percentage.

    Args:
        completed_lines: Lines processed so far.
        total_lines: Lines in the run.

    Returns:
        int: Percentage in the range 0-100.
    """
    if total_lines <= 0:
        return 100
    clamped = max(0, min(completed_lines, total_lines))
    return round(100 * clamped / total_lines)
