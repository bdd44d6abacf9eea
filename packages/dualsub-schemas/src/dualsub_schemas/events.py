"""Event taxonomy and structured payloads for run observability."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.primitives import LineId, RunStatus


class RunEvent(StrEnum):
    """Event names for run lifecycle."""

    STARTED = "run_started"
    COMPLETED = "run_completed"
    FAILED = "run_failed"
    CANCELLED = "run_cancelled"


class TranslationEvent(StrEnum):
    """Event names for translator traffic and chunk handling."""

    REQUESTED = "translation_requested"
    RECEIVED = "translation_received"
    FAILED = "translation_failed"
    CHUNK_RETRY = "chunk_retry"
    CHUNK_EXHAUSTED = "chunk_exhausted"
    TERMINAL_ABORT = "terminal_abort"


class VerificationEvent(StrEnum):
    """Event names for the verification sweep."""

    ROUND_STARTED = "verification_round_started"
    ROUND_COMPLETED = "verification_round_completed"


class ProgressEvent(StrEnum):
    """Event names for progress updates."""

    RUN_STARTED = "run_started"
    RUN_PROGRESS = "run_progress"
    CHUNK_RETRY = "chunk_retry"
    VERIFICATION = "verification"
    RUN_COMPLETED = "run_completed"
    RUN_STOPPED = "run_stopped"
    RUN_FAILED = "run_failed"
    RUN_CANCELLED = "run_cancelled"


class RunStartedData(BaseSchema):
    """Payload for run start events."""

    total_lines: int = Field(..., ge=0, description="Lines in the run")
    pending_lines: int = Field(..., ge=0, description="Lines lacking a translation")
    total_chunks: int = Field(..., ge=0, description="Planned chunk count")
    target_language: str = Field(..., min_length=1, description="Target language")


class RunCompletedData(BaseSchema):
    """Payload for run completion events."""

    status: RunStatus = Field(..., description="Final run status")
    translated_lines: int = Field(..., ge=0, description="Resolved line count")
    missing_lines: int = Field(..., ge=0, description="Unresolved line count")


class RunFailedData(BaseSchema):
    """Payload for run failure events."""

    error_code: str = Field(..., min_length=1, description="Error code")
    why: str = Field(..., min_length=1, description="Reason for failure")
    next_action: str = Field(..., min_length=1, description="Suggested next action")
    missing_line_ids: list[LineId] | None = Field(
        None, description="Lines without a translation"
    )


class TranslationRequestData(BaseSchema):
    """Payload for translator request events."""

    chunk_index: int | None = Field(None, ge=1, description="Chunk position")
    attempt: int = Field(..., ge=1, description="Attempt number")
    line_ids: list[LineId] = Field(..., description="Requested line ids")
    context_line_ids: list[LineId] = Field(
        default_factory=list, description="Context-only line ids"
    )


class TranslationResponseData(BaseSchema):
    """Payload for translator response events."""

    chunk_index: int | None = Field(None, ge=1, description="Chunk position")
    attempt: int = Field(..., ge=1, description="Attempt number")
    requested: int = Field(..., ge=0, description="Requested line count")
    received: int = Field(..., ge=0, description="Lines returned with text")
    missing_line_ids: list[LineId] = Field(
        default_factory=list, description="Requested ids absent from the reply"
    )


class ChunkRetryData(BaseSchema):
    """Payload for chunk retry events."""

    chunk_index: int = Field(..., ge=1, description="Chunk position")
    attempt: int = Field(..., ge=1, description="Attempt about to start")
    max_attempts: int = Field(..., ge=1, description="Attempt cap")
    delay_s: float = Field(..., ge=0, description="Backoff applied before retry")
    error_kind: str | None = Field(None, description="Failure kind if any")


class VerificationRoundData(BaseSchema):
    """Payload for verification round events."""

    round: int = Field(..., ge=1, description="1-based round number")
    max_rounds: int = Field(..., ge=1, description="Round cap")
    missing_lines: int = Field(..., ge=0, description="Missing lines at this point")
    group_count: int | None = Field(None, ge=0, description="Groups in the round")
