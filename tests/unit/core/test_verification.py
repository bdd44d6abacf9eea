"""Unit tests for the verification sweep."""

from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

import pytest

from dualsub_core.ports.orchestrator import LogSinkProtocol
from dualsub_core.ports.translator import TranslationError
from dualsub_core.run_context import TranslationRunContext
from dualsub_core.verification import VerificationSweep
from dualsub_schemas.config import VerificationConfig
from dualsub_schemas.events import VerificationEvent
from dualsub_schemas.logs import LogEntry
from dualsub_schemas.primitives import CancellationReason, RunId
from dualsub_schemas.subtitles import Line
from dualsub_schemas.translation import (
    TranslationErrorInfo,
    TranslationErrorKind,
    TranslationOutcome,
)

type LineFactory = Callable[..., list[Line]]

RUN_ID: RunId = UUID("01890a5c-91c8-7b2a-9f51-9b40d0cfb700")


class _StubLogSink(LogSinkProtocol):
    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def emit_log(self, entry: LogEntry) -> None:
        self.entries.append(entry)


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class _SweepTranslate:
    def __init__(
        self,
        never: set[int] | None = None,
        error: TranslationError | None = None,
    ) -> None:
        self.calls: list[list[int]] = []
        self.contexts: list[list[int]] = []
        self._never = never or set()
        self._error = error

    async def __call__(
        self, lines: list[Line], previous_lines: list[Line]
    ) -> TranslationOutcome:
        self.calls.append([line.id for line in lines])
        self.contexts.append([line.id for line in previous_lines])
        if self._error is not None:
            raise self._error
        return {line.id: "ok" for line in lines if line.id not in self._never}


def _run_with_missing(lines: list[Line], missing: set[int]) -> TranslationRunContext:
    for line in lines:
        if line.id not in missing:
            line.translated_text = f"done {line.id}"
    return TranslationRunContext(run_id=RUN_ID, lines=lines)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_resolves_missing_lines(make_lines: LineFactory) -> None:
    run = _run_with_missing(make_lines(20), {3, 11, 12})
    translate = _SweepTranslate()

    sweep = VerificationSweep(run, translate, context_size=2, sleep=_RecordingSleep())
    missing = await sweep.verify()

    assert missing == 0
    assert sweep.rounds_run == 1
    assert translate.calls == [[3, 11, 12]]
    assert translate.contexts == [[1, 2]]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_groups_run_sequentially_with_delay(make_lines: LineFactory) -> None:
    run = _run_with_missing(make_lines(10), {0, 1, 2, 3, 4})
    translate = _SweepTranslate()
    sleep = _RecordingSleep()

    await VerificationSweep(
        run,
        translate,
        settings=VerificationConfig(batch_size=2, max_rounds=2, group_delay_s=0.5),
        sleep=sleep,
    ).verify()

    assert translate.calls == [[0, 1], [2, 3], [4]]
    assert sleep.delays == [0.5, 0.5]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_round_cap_leaves_deficit(make_lines: LineFactory) -> None:
    run = _run_with_missing(make_lines(10), {2, 5, 7})
    translate = _SweepTranslate(never={2, 5, 7})
    logs = _StubLogSink()

    sweep = VerificationSweep(run, translate, log_sink=logs, sleep=_RecordingSleep())
    missing = await sweep.verify()

    assert missing == 3
    assert sweep.rounds_run == 2
    assert len(translate.calls) == 2
    rounds = [
        entry.message
        for entry in logs.entries
        if entry.event == VerificationEvent.ROUND_COMPLETED
    ]
    assert rounds == [
        "Verification round 1/2 completed, 3 missing",
        "Verification round 2/2 completed, 3 missing",
    ]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_terminal_error_aborts_sweep(make_lines: LineFactory) -> None:
    run = _run_with_missing(make_lines(10), {0, 1, 2, 3})
    error = TranslationError(
        TranslationErrorInfo(kind=TranslationErrorKind.AUTHENTICATION, message="401")
    )
    translate = _SweepTranslate(error=error)

    sweep = VerificationSweep(
        run,
        translate,
        settings=VerificationConfig(batch_size=2, max_rounds=2, group_delay_s=0.0),
        sleep=_RecordingSleep(),
    )
    missing = await sweep.verify()

    assert missing == 4
    assert len(translate.calls) == 1
    assert run.cancel_reason == CancellationReason.TERMINAL_ERROR
    assert sweep.rounds_run == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_transient_error_leaves_group_missing(make_lines: LineFactory) -> None:
    run = _run_with_missing(make_lines(4), {1})
    error = TranslationError(
        TranslationErrorInfo(kind=TranslationErrorKind.OVERLOAD, message="busy")
    )
    translate = _SweepTranslate(error=error)

    missing = await VerificationSweep(run, translate, sleep=_RecordingSleep()).verify()

    assert missing == 1
    assert len(translate.calls) == 2
    assert not run.cancelled


@pytest.mark.unit
@pytest.mark.asyncio
async def test_zero_rounds_skips_sweep(make_lines: LineFactory) -> None:
    run = _run_with_missing(make_lines(4), {1})
    translate = _SweepTranslate()

    missing = await VerificationSweep(
        run, translate, settings=VerificationConfig(max_rounds=0)
    ).verify()

    assert missing == 1
    assert translate.calls == []
