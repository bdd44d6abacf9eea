"""Sink protocols and log builders for translation runs."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from dualsub_schemas.events import (
    ChunkRetryData,
    RunCompletedData,
    RunEvent,
    RunFailedData,
    RunStartedData,
    TranslationEvent,
    TranslationRequestData,
    TranslationResponseData,
    VerificationEvent,
    VerificationRoundData,
)
from dualsub_schemas.logs import LogEntry
from dualsub_schemas.primitives import (
    LogKind,
    LogLevel,
    PipelinePhase,
    RunId,
    RunStatus,
    Timestamp,
)
from dualsub_schemas.progress import ProgressUpdate
from dualsub_schemas.translation import TranslationErrorInfo


@runtime_checkable
class LogSinkProtocol(Protocol):
    """Protocol for emitting JSONL log entries."""

    async def emit_log(self, entry: LogEntry) -> None:
        """Emit a log entry."""
        raise NotImplementedError


@runtime_checkable
class ProgressSinkProtocol(Protocol):
    """Protocol for emitting progress updates."""

    async def emit_progress(self, update: ProgressUpdate) -> None:
        """Emit a progress update."""
        raise NotImplementedError


class RunErrorCode(StrEnum):
    """Categorized error codes for failed or stopped runs."""

    TERMINAL_TRANSLATOR_ERROR = "terminal_translator_error"
    TRANSLATION_DEFICIT = "translation_deficit"


def next_action_for(code: RunErrorCode) -> str:
    """Return the suggested follow-up for a run error code.

    Returns:
        str: Human readable next action.
    """
    actions = {
        RunErrorCode.TERMINAL_TRANSLATOR_ERROR: (
            "Check the API key, permissions and billing quota, then retry."
        ),
        RunErrorCode.TRANSLATION_DEFICIT: (
            "Re-run the translation; only the missing lines will be requested."
        ),
    }
    return actions[code]


def build_run_started_log(
    timestamp: Timestamp, run_id: RunId, data: RunStartedData
) -> LogEntry:
    """Build a log entry for run start.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        data: Run start payload.

    Returns:
        LogEntry: Structured run start log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        kind=LogKind.INFO,
        event=RunEvent.STARTED,
        run_id=run_id,
        phase=None,
        message=f"Translating {data.pending_lines} of {data.total_lines} lines",
        data=data.model_dump(exclude_none=True),
    )


def build_run_completed_log(
    timestamp: Timestamp,
    run_id: RunId,
    status: RunStatus,
    translated_lines: int,
    missing_lines: int,
) -> LogEntry:
    """Build a log entry for a run that finished or was cancelled.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        status: Final run status.
        translated_lines: Resolved line count.
        missing_lines: Unresolved line count.

    Returns:
        LogEntry: Structured run completion log entry.
    """
    event = RunEvent.CANCELLED if status == RunStatus.CANCELLED else RunEvent.COMPLETED
    message = "Run cancelled" if status == RunStatus.CANCELLED else "Run completed"
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        kind=LogKind.INFO,
        event=event,
        run_id=run_id,
        phase=None,
        message=message,
        data=RunCompletedData(
            status=status,
            translated_lines=translated_lines,
            missing_lines=missing_lines,
        ).model_dump(exclude_none=True),
    )


def build_run_failed_log(
    timestamp: Timestamp,
    run_id: RunId,
    message: str,
    error_code: RunErrorCode,
    why: str,
    missing_line_ids: list[int] | None = None,
) -> LogEntry:
    """Build a log entry for a stopped or failed run.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        message: Failure message.
        error_code: Error code describing the failure.
        why: Reason for the failure.
        missing_line_ids: Lines left without a translation.

    Returns:
        LogEntry: Structured run failure log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.ERROR,
        kind=LogKind.ERROR,
        event=RunEvent.FAILED,
        run_id=run_id,
        phase=None,
        message=message,
        data=RunFailedData(
            error_code=error_code.value,
            why=why,
            next_action=next_action_for(error_code),
            missing_line_ids=missing_line_ids,
        ).model_dump(exclude_none=True),
    )


def build_translation_request_log(
    timestamp: Timestamp,
    run_id: RunId,
    phase: PipelinePhase,
    data: TranslationRequestData,
) -> LogEntry:
    """Build a log entry for an issued translator request.

    Returns:
        LogEntry: Structured request log entry.
    """
    label = _label_for(data.chunk_index)
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.DEBUG,
        kind=LogKind.REQUEST,
        event=TranslationEvent.REQUESTED,
        run_id=run_id,
        phase=phase,
        message=f"Requesting {len(data.line_ids)} lines ({label})",
        data=data.model_dump(exclude_none=True),
    )


def build_translation_response_log(
    timestamp: Timestamp,
    run_id: RunId,
    phase: PipelinePhase,
    data: TranslationResponseData,
) -> LogEntry:
    """Build a log entry for a translator response.

    Returns:
        LogEntry: Structured response log entry.
    """
    label = _label_for(data.chunk_index)
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.DEBUG,
        kind=LogKind.RESPONSE,
        event=TranslationEvent.RECEIVED,
        run_id=run_id,
        phase=phase,
        message=f"Received {data.received}/{data.requested} lines ({label})",
        data=data.model_dump(exclude_none=True),
    )


def build_translation_failed_log(
    timestamp: Timestamp,
    run_id: RunId,
    phase: PipelinePhase,
    error: TranslationErrorInfo,
    chunk_index: int | None = None,
) -> LogEntry:
    """Build a log entry for a failed translator call.

    Returns:
        LogEntry: Structured error log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.WARN,
        kind=LogKind.ERROR,
        event=TranslationEvent.FAILED,
        run_id=run_id,
        phase=phase,
        message=f"Translation failed ({_label_for(chunk_index)}): {error.message}",
        data={
            "chunk_index": chunk_index,
            "kind": str(error.kind),
            "status_code": error.status_code,
        },
    )


def build_chunk_retry_log(
    timestamp: Timestamp, run_id: RunId, data: ChunkRetryData
) -> LogEntry:
    """Build a log entry for a chunk retry.

    Returns:
        LogEntry: Structured retry log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        kind=LogKind.INFO,
        event=TranslationEvent.CHUNK_RETRY,
        run_id=run_id,
        phase=PipelinePhase.TRANSLATE,
        message=(
            f"Retrying block {data.chunk_index} "
            f"(attempt {data.attempt}/{data.max_attempts})"
        ),
        data=data.model_dump(exclude_none=True),
    )


def build_chunk_exhausted_log(
    timestamp: Timestamp, run_id: RunId, chunk_index: int, missing_line_ids: list[int]
) -> LogEntry:
    """Build a log entry for a chunk that ran out of attempts.

    Returns:
        LogEntry: Structured warning log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.WARN,
        kind=LogKind.ERROR,
        event=TranslationEvent.CHUNK_EXHAUSTED,
        run_id=run_id,
        phase=PipelinePhase.TRANSLATE,
        message=(
            f"Block {chunk_index} left {len(missing_line_ids)} lines for verification"
        ),
        data={"chunk_index": chunk_index, "missing_line_ids": list(missing_line_ids)},
    )


def build_terminal_abort_log(
    timestamp: Timestamp,
    run_id: RunId,
    phase: PipelinePhase,
    error: TranslationErrorInfo,
) -> LogEntry:
    """Build a log entry for a run halted by a terminal translator error.

    Returns:
        LogEntry: Structured abort log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.ERROR,
        kind=LogKind.ERROR,
        event=TranslationEvent.TERMINAL_ABORT,
        run_id=run_id,
        phase=phase,
        message=f"Stopped: {error.message}",
        data=error.model_dump(exclude_none=True),
    )


def build_verification_round_log(
    timestamp: Timestamp,
    run_id: RunId,
    event: VerificationEvent,
    data: VerificationRoundData,
) -> LogEntry:
    """Build a log entry for a verification round boundary.

    Returns:
        LogEntry: Structured verification log entry.
    """
    verb = "started" if event == VerificationEvent.ROUND_STARTED else "completed"
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        kind=LogKind.INFO,
        event=event,
        run_id=run_id,
        phase=PipelinePhase.VERIFY,
        message=(
            f"Verification round {data.round}/{data.max_rounds} {verb}, "
            f"{data.missing_lines} missing"
        ),
        data=data.model_dump(exclude_none=True),
    )


def _label_for(chunk_index: int | None) -> str:
    return f"block {chunk_index}" if chunk_index is not None else "verification"
