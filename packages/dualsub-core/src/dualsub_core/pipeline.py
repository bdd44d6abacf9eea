"""Run driver wiring budgeting, chunking, translation and verification."""

from __future__ import annotations

from collections.abc import Callable
from uuid import uuid4

from dualsub_core.chunking import plan_chunks
from dualsub_core.ports.orchestrator import (
    LogSinkProtocol,
    ProgressSinkProtocol,
    RunErrorCode,
    build_run_completed_log,
    build_run_failed_log,
    build_run_started_log,
)
from dualsub_core.ports.translator import TranslatorProtocol
from dualsub_core.run_context import TranslationRunContext, now_timestamp
from dualsub_core.timing import compute_duration_budgets, optimize_timings
from dualsub_core.verification import VerificationSweep
from dualsub_core.worker_pool import ChunkWorkerPool, SleepCallable, TranslateCallable
from dualsub_schemas.config import RunConfig
from dualsub_schemas.events import ProgressEvent, RunStartedData
from dualsub_schemas.logs import LogEntry
from dualsub_schemas.primitives import (
    CancellationReason,
    RunId,
    RunStatus,
    Timestamp,
)
from dualsub_schemas.progress import ProgressUpdate
from dualsub_schemas.subtitles import DurationBudget, Line
from dualsub_schemas.translation import (
    TranslationOutcome,
    TranslationRequest,
    TranslationRunResult,
)


class TranslationPipeline:
    """Translate one file's lines end to end."""

    def __init__(
        self,
        translator: TranslatorProtocol,
        config: RunConfig | None = None,
        log_sink: LogSinkProtocol | None = None,
        progress_sink: ProgressSinkProtocol | None = None,
        sleep: SleepCallable | None = None,
        clock: Callable[[], Timestamp] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            translator: Translator used for every request.
            config: Run configuration; defaults apply when omitted.
            log_sink: Optional log sink.
            progress_sink: Optional progress sink.
            sleep: Awaitable used for backoff and group delays.
            clock: Optional timestamp provider.
        """
        self._translator = translator
        self._config = config or RunConfig()
        self._log_sink = log_sink
        self._progress_sink = progress_sink
        self._sleep = sleep
        self._clock = clock or now_timestamp

    @property
    def config(self) -> RunConfig:
        """Return the run configuration."""
        return self._config

    def create_run(
        self, lines: list[Line], run_id: RunId | None = None
    ) -> TranslationRunContext:
        """Create a run context so callers can hold a cancellation handle.

        Args:
            lines: Lines in timeline order; translated in place.
            run_id: Optional run identifier.

        Returns:
            TranslationRunContext: Fresh run context.
        """
        return TranslationRunContext(run_id=run_id or uuid4(), lines=lines)

    async def run(
        self, lines: list[Line], run_id: RunId | None = None
    ) -> TranslationRunResult:
        """Create a run for ``lines`` and execute it.

        Returns:
            TranslationRunResult: Final run state.
        """
        return await self.execute(self.create_run(lines, run_id))

    async def execute(self, run: TranslationRunContext) -> TranslationRunResult:
        """Execute a prepared run.

        Lines translated before a stop, cancellation or failure keep their
        text.

        Args:
            run: Run context created by ``create_run``.

        Returns:
            TranslationRunResult: Final run state.
        """
        config = self._config
        budgets = compute_duration_budgets(
            run.lines,
            hard_cap_ms=config.timing.hard_cap_ms,
            min_gap_ms=config.timing.min_gap_ms,
        )
        chunks = plan_chunks(
            run.lines,
            chunk_size=config.chunking.chunk_size,
            overlap_size=config.chunking.overlap_size,
        )
        await self._emit_progress(
            run, ProgressEvent.RUN_STARTED, RunStatus.RUNNING, 0, "Starting..."
        )
        await self._emit_log(
            build_run_started_log(
                self._clock(),
                run.run_id,
                RunStartedData(
                    total_lines=run.total_lines,
                    pending_lines=len(run.pending_lines()),
                    total_chunks=len(chunks),
                    target_language=config.translation.target_language,
                ),
            )
        )

        translate = self._build_translate(budgets)
        pool = ChunkWorkerPool(
            run,
            translate,
            retry=config.retry,
            max_workers=config.concurrency.max_workers,
            log_sink=self._log_sink,
            progress_sink=self._progress_sink,
            sleep=self._sleep,
            clock=self._clock,
        )
        await pool.run(chunks)

        if not run.cancelled:
            sweep = VerificationSweep(
                run,
                translate,
                settings=config.verification,
                context_size=config.chunking.overlap_size,
                log_sink=self._log_sink,
                progress_sink=self._progress_sink,
                sleep=self._sleep,
                clock=self._clock,
            )
            await sweep.verify()

        return await self._finish(run)

    def export_lines(self, run: TranslationRunContext) -> list[Line]:
        """Return the run's lines with optimized timings when enabled.

        Returns:
            list[Line]: Copies ready for export.
        """
        timing = self._config.timing
        return optimize_timings(run.lines, timing, enabled=timing.optimize)

    def _build_translate(self, budgets: DurationBudget) -> TranslateCallable:
        translation = self._config.translation

        async def _translate(
            lines: list[Line], previous_lines: list[Line]
        ) -> TranslationOutcome:
            request = TranslationRequest(
                lines=lines,
                target_language=translation.target_language,
                context=translation.context,
                previous_lines=previous_lines,
                model=self._config.model,
                duration_budget={line.id: budgets[line.id] for line in lines},
                glossary=translation.glossary,
            )
            return await self._translator.translate(request)

        return _translate

    async def _finish(self, run: TranslationRunContext) -> TranslationRunResult:
        missing_ids = run.missing_line_ids()
        translated = run.translated_count()

        if run.terminal_error is not None:
            status = RunStatus.STOPPED
            message = f"Stopped: {run.terminal_error.message}"
            await self._emit_progress(
                run, ProgressEvent.RUN_STOPPED, status, run.last_percent, message
            )
            await self._emit_log(
                build_run_failed_log(
                    self._clock(),
                    run.run_id,
                    message,
                    RunErrorCode.TERMINAL_TRANSLATOR_ERROR,
                    run.terminal_error.message,
                    missing_line_ids=missing_ids,
                )
            )
        elif run.cancel_reason == CancellationReason.USER:
            status = RunStatus.CANCELLED
            message = "Cancelled"
            await self._emit_progress(
                run, ProgressEvent.RUN_CANCELLED, status, run.last_percent, message
            )
            await self._emit_log(
                build_run_completed_log(
                    self._clock(), run.run_id, status, translated, len(missing_ids)
                )
            )
        elif missing_ids:
            status = RunStatus.FAILED
            message = f"Failed: {len(missing_ids)} lines missing"
            await self._emit_progress(
                run, ProgressEvent.RUN_FAILED, status, run.last_percent, message
            )
            await self._emit_log(
                build_run_failed_log(
                    self._clock(),
                    run.run_id,
                    message,
                    RunErrorCode.TRANSLATION_DEFICIT,
                    f"{len(missing_ids)} lines still lack a translation",
                    missing_line_ids=missing_ids,
                )
            )
        else:
            status = RunStatus.COMPLETED
            message = "Done"
            await self._emit_progress(
                run, ProgressEvent.RUN_COMPLETED, status, 100, message
            )
            await self._emit_log(
                build_run_completed_log(
                    self._clock(), run.run_id, status, translated, 0
                )
            )

        return TranslationRunResult(
            run_id=run.run_id,
            status=status,
            message=message,
            total_lines=run.total_lines,
            translated_lines=translated,
            missing_line_ids=missing_ids,
            error=run.terminal_error,
        )

    async def _emit_progress(
        self,
        run: TranslationRunContext,
        event: ProgressEvent,
        status: RunStatus,
        percent: int,
        message: str,
    ) -> None:
        if self._progress_sink is None:
            return
        await self._progress_sink.emit_progress(
            ProgressUpdate(
                run_id=run.run_id,
                event=event,
                timestamp=self._clock(),
                phase=None,
                status=status,
                percent=percent,
                message=message,
                completed_lines=run.completed_line_count,
                total_lines=run.total_lines,
                missing_lines=len(run.pending_lines()),
            )
        )

    async def _emit_log(self, entry: LogEntry) -> None:
        if self._log_sink is None:
            return
        await self._log_sink.emit_log(entry)
