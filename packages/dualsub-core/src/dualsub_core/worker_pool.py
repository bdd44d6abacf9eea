"""Concurrent chunk translation with retries and cooperative cancellation."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from dualsub_core.ports.orchestrator import (
    LogSinkProtocol,
    ProgressSinkProtocol,
    build_chunk_exhausted_log,
    build_chunk_retry_log,
    build_terminal_abort_log,
    build_translation_failed_log,
    build_translation_request_log,
    build_translation_response_log,
)
from dualsub_core.ports.translator import classify_exception
from dualsub_core.run_context import TranslationRunContext, now_timestamp
from dualsub_schemas.config import RetryConfig
from dualsub_schemas.events import (
    ChunkRetryData,
    ProgressEvent,
    TranslationRequestData,
    TranslationResponseData,
)
from dualsub_schemas.logs import LogEntry
from dualsub_schemas.primitives import PipelinePhase, RunStatus, Timestamp
from dualsub_schemas.progress import ProgressUpdate
from dualsub_schemas.subtitles import Chunk, Line
from dualsub_schemas.translation import TranslationErrorInfo, TranslationOutcome

type TranslateCallable = Callable[
    [list[Line], list[Line]], Awaitable[TranslationOutcome]
]
type SleepCallable = Callable[[float], Awaitable[None]]

DEFAULT_MAX_WORKERS = 8


class ChunkState(StrEnum):
    """Lifecycle of a single chunk inside the pool."""

    PENDING = "pending"
    ATTEMPTING = "attempting"
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


PROCESSED_STATES = frozenset({ChunkState.RESOLVED, ChunkState.EXHAUSTED})


@dataclass(slots=True)
class ChunkRecord:
    """Mutable bookkeeping for one chunk, owned by the worker that claimed it."""

    chunk: Chunk
    state: ChunkState = ChunkState.PENDING
    attempts: int = 0
    translator_calls: int = 0
    last_error: TranslationErrorInfo | None = None


class ChunkWorkerPool:
    """Fixed-size pool of workers draining a shared chunk queue."""

    def __init__(
        self,
        run: TranslationRunContext,
        translate: TranslateCallable,
        retry: RetryConfig | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        log_sink: LogSinkProtocol | None = None,
        progress_sink: ProgressSinkProtocol | None = None,
        sleep: SleepCallable | None = None,
        clock: Callable[[], Timestamp] | None = None,
    ) -> None:
        """Initialize the worker pool.

        Args:
            run: Run context that owns the lines and counters.
            translate: Callable sending lines plus context to the translator.
            retry: Per-chunk retry policy.
            max_workers: Number of concurrent workers.
            log_sink: Optional log sink.
            progress_sink: Optional progress sink.
            sleep: Awaitable used for backoff delays.
            clock: Optional timestamp provider.

        Raises:
            ValueError: If max_workers is not positive.
        """
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self._run = run
        self._translate = translate
        self._retry = retry or RetryConfig()
        self._max_workers = max_workers
        self._log_sink = log_sink
        self._progress_sink = progress_sink
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or now_timestamp

    async def run(self, chunks: list[Chunk]) -> list[ChunkRecord]:
        """Translate every chunk, returning per-chunk records in plan order.

        Chunks left in the queue when the run is cancelled end up in the
        ``cancelled`` state without being dispatched.

        Args:
            chunks: Planned chunks.

        Returns:
            list[ChunkRecord]: Final record for each chunk.
        """
        records = [ChunkRecord(chunk=chunk) for chunk in chunks]
        if not records:
            return records
        queue: asyncio.Queue[ChunkRecord] = asyncio.Queue()
        for record in records:
            queue.put_nowait(record)

        worker_count = min(self._max_workers, len(records))
        async with asyncio.TaskGroup() as group:
            for _ in range(worker_count):
                group.create_task(self._worker(queue))

        for record in records:
            if record.state == ChunkState.PENDING:
                record.state = ChunkState.CANCELLED
        return records

    async def _worker(self, queue: asyncio.Queue[ChunkRecord]) -> None:
        while not self._run.cancelled:
            try:
                record = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await self._process(record)
            if record.state in PROCESSED_STATES:
                await self._record_processed(record)

    async def _process(self, record: ChunkRecord) -> None:
        chunk = record.chunk
        max_attempts = self._retry.max_attempts
        record.state = ChunkState.ATTEMPTING
        for attempt in range(1, max_attempts + 1):
            if self._run.cancelled:
                record.state = ChunkState.CANCELLED
                return
            pending = self._run.pending_lines(chunk.line_ids)
            if not pending:
                record.state = ChunkState.RESOLVED
                return
            record.attempts = attempt
            pending_ids = [line.id for line in pending]
            await self._emit_log(
                build_translation_request_log(
                    self._clock(),
                    self._run.run_id,
                    PipelinePhase.TRANSLATE,
                    TranslationRequestData(
                        chunk_index=chunk.index,
                        attempt=attempt,
                        line_ids=pending_ids,
                        context_line_ids=[line.id for line in chunk.previous_context],
                    ),
                )
            )
            record.translator_calls += 1
            try:
                outcome = await self._translate(pending, list(chunk.previous_context))
            except Exception as exc:
                error = classify_exception(exc)
                record.last_error = error
                await self._emit_log(
                    build_translation_failed_log(
                        self._clock(),
                        self._run.run_id,
                        PipelinePhase.TRANSLATE,
                        error,
                        chunk_index=chunk.index,
                    )
                )
                if error.is_terminal:
                    self._run.abort(error)
                    record.state = ChunkState.ABORTED
                    await self._emit_log(
                        build_terminal_abort_log(
                            self._clock(),
                            self._run.run_id,
                            PipelinePhase.TRANSLATE,
                            error,
                        )
                    )
                    return
                if attempt < max_attempts:
                    delay = self._retry.delay_for(attempt)
                    await self._announce_retry(chunk, attempt + 1, delay, error)
                    await self._sleep(delay)
                continue

            applied = self._run.apply_translations(outcome, pending_ids)
            still_missing = [
                line.id for line in self._run.pending_lines(chunk.line_ids)
            ]
            await self._emit_log(
                build_translation_response_log(
                    self._clock(),
                    self._run.run_id,
                    PipelinePhase.TRANSLATE,
                    TranslationResponseData(
                        chunk_index=chunk.index,
                        attempt=attempt,
                        requested=len(pending_ids),
                        received=len(applied),
                        missing_line_ids=still_missing,
                    ),
                )
            )
            if not still_missing:
                record.state = ChunkState.RESOLVED
                return
            if attempt < max_attempts:
                # Partial replies retry straight away with only the gaps.
                await self._announce_retry(chunk, attempt + 1, 0.0, None)

        missing = [line.id for line in self._run.pending_lines(chunk.line_ids)]
        if not missing:
            record.state = ChunkState.RESOLVED
            return
        record.state = ChunkState.EXHAUSTED
        await self._emit_log(
            build_chunk_exhausted_log(
                self._clock(), self._run.run_id, chunk.index, missing
            )
        )

    async def _announce_retry(
        self,
        chunk: Chunk,
        next_attempt: int,
        delay_s: float,
        error: TranslationErrorInfo | None,
    ) -> None:
        await self._emit_log(
            build_chunk_retry_log(
                self._clock(),
                self._run.run_id,
                ChunkRetryData(
                    chunk_index=chunk.index,
                    attempt=next_attempt,
                    max_attempts=self._retry.max_attempts,
                    delay_s=delay_s,
                    error_kind=str(error.kind) if error is not None else None,
                ),
            )
        )
        await self._emit_progress(
            ProgressEvent.CHUNK_RETRY,
            f"Retrying block {chunk.index}...",
            self._run.completed_line_count,
            self._run.last_percent,
        )

    async def _record_processed(self, record: ChunkRecord) -> None:
        completed, percent = await self._run.record_processed(len(record.chunk.lines))
        await self._emit_progress(
            ProgressEvent.RUN_PROGRESS,
            f"Translating... {percent}%",
            completed,
            percent,
        )

    async def _emit_progress(
        self, event: ProgressEvent, message: str, completed: int, percent: int
    ) -> None:
        if self._progress_sink is None:
            return
        await self._progress_sink.emit_progress(
            ProgressUpdate(
                run_id=self._run.run_id,
                event=event,
                timestamp=self._clock(),
                phase=PipelinePhase.TRANSLATE,
                status=RunStatus.RUNNING,
                percent=percent,
                message=message,
                completed_lines=completed,
                total_lines=self._run.total_lines,
            )
        )

    async def _emit_log(self, entry: LogEntry) -> None:
        if self._log_sink is None:
            return
        await self._log_sink.emit_log(entry)
