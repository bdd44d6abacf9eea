"""Sequential sweep that re-requests lines the worker pool left unresolved."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from dualsub_core.ports.orchestrator import (
    LogSinkProtocol,
    ProgressSinkProtocol,
    build_terminal_abort_log,
    build_translation_failed_log,
    build_translation_request_log,
    build_translation_response_log,
    build_verification_round_log,
)
from dualsub_core.ports.translator import classify_exception
from dualsub_core.run_context import TranslationRunContext, now_timestamp
from dualsub_core.worker_pool import SleepCallable, TranslateCallable
from dualsub_schemas.config import VerificationConfig
from dualsub_schemas.events import (
    ProgressEvent,
    TranslationRequestData,
    TranslationResponseData,
    VerificationEvent,
    VerificationRoundData,
)
from dualsub_schemas.logs import LogEntry
from dualsub_schemas.primitives import PipelinePhase, RunStatus, Timestamp
from dualsub_schemas.progress import ProgressUpdate
from dualsub_schemas.subtitles import Line


class VerificationSweep:
    """Bounded retry rounds over every line still missing a translation."""

    def __init__(
        self,
        run: TranslationRunContext,
        translate: TranslateCallable,
        settings: VerificationConfig | None = None,
        context_size: int = 5,
        log_sink: LogSinkProtocol | None = None,
        progress_sink: ProgressSinkProtocol | None = None,
        sleep: SleepCallable | None = None,
        clock: Callable[[], Timestamp] | None = None,
    ) -> None:
        """Initialize the verification sweep.

        Args:
            run: Run context that owns the lines.
            translate: Callable sending lines plus context to the translator.
            settings: Batch size, round cap and inter-group delay.
            context_size: Preceding timeline lines sent with each group.
            log_sink: Optional log sink.
            progress_sink: Optional progress sink.
            sleep: Awaitable used between groups.
            clock: Optional timestamp provider.
        """
        self._run = run
        self._translate = translate
        self._settings = settings or VerificationConfig()
        self._context_size = context_size
        self._log_sink = log_sink
        self._progress_sink = progress_sink
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or now_timestamp
        self.rounds_run = 0

    async def verify(self) -> int:
        """Run verification rounds until nothing is missing or the cap is hit.

        Returns:
            int: Number of lines still missing a translation.
        """
        missing = self._run.pending_lines()
        max_rounds = self._settings.max_rounds
        while missing and self.rounds_run < max_rounds and not self._run.cancelled:
            self.rounds_run += 1
            groups = _batch(missing, self._settings.batch_size)
            await self._emit_round(
                VerificationEvent.ROUND_STARTED, len(missing), len(groups)
            )
            await self._emit_progress(
                f"Verifying {len(missing)} missing lines "
                f"(round {self.rounds_run}/{max_rounds})...",
                len(missing),
            )
            for position, group in enumerate(groups):
                if self._run.cancelled:
                    break
                if position > 0:
                    await self._sleep(self._settings.group_delay_s)
                    if self._run.cancelled:
                        break
                await self._translate_group(group)
            missing = self._run.pending_lines()
            await self._emit_round(
                VerificationEvent.ROUND_COMPLETED, len(missing), len(groups)
            )
        return len(missing)

    async def _translate_group(self, group: list[Line]) -> None:
        group_ids = [line.id for line in group]
        context = self._run.preceding_lines(group[0].id, self._context_size)
        await self._emit_log(
            build_translation_request_log(
                self._clock(),
                self._run.run_id,
                PipelinePhase.VERIFY,
                TranslationRequestData(
                    attempt=self.rounds_run,
                    line_ids=group_ids,
                    context_line_ids=[line.id for line in context],
                ),
            )
        )
        try:
            outcome = await self._translate(group, context)
        except Exception as exc:
            error = classify_exception(exc)
            await self._emit_log(
                build_translation_failed_log(
                    self._clock(), self._run.run_id, PipelinePhase.VERIFY, error
                )
            )
            if error.is_terminal:
                self._run.abort(error)
                await self._emit_log(
                    build_terminal_abort_log(
                        self._clock(), self._run.run_id, PipelinePhase.VERIFY, error
                    )
                )
            return

        applied = self._run.apply_translations(outcome, group_ids)
        await self._emit_log(
            build_translation_response_log(
                self._clock(),
                self._run.run_id,
                PipelinePhase.VERIFY,
                TranslationResponseData(
                    attempt=self.rounds_run,
                    requested=len(group_ids),
                    received=len(applied),
                    missing_line_ids=[
                        line.id for line in self._run.pending_lines(group_ids)
                    ],
                ),
            )
        )

    async def _emit_round(
        self, event: VerificationEvent, missing_lines: int, group_count: int
    ) -> None:
        await self._emit_log(
            build_verification_round_log(
                self._clock(),
                self._run.run_id,
                event,
                VerificationRoundData(
                    round=self.rounds_run,
                    max_rounds=self._settings.max_rounds,
                    missing_lines=missing_lines,
                    group_count=group_count,
                ),
            )
        )

    async def _emit_progress(self, message: str, missing_lines: int) -> None:
        if self._progress_sink is None:
            return
        await self._progress_sink.emit_progress(
            ProgressUpdate(
                run_id=self._run.run_id,
                event=ProgressEvent.VERIFICATION,
                timestamp=self._clock(),
                phase=PipelinePhase.VERIFY,
                status=RunStatus.RUNNING,
                percent=self._run.last_percent,
                message=message,
                completed_lines=self._run.completed_line_count,
                total_lines=self._run.total_lines,
                missing_lines=missing_lines,
            )
        )

    async def _emit_log(self, entry: LogEntry) -> None:
        if self._log_sink is None:
            return
        await self._log_sink.emit_log(entry)


def _batch(lines: list[Line], size: int) -> list[list[Line]]:
    return [lines[index : index + size] for index in range(0, len(lines), size)]
