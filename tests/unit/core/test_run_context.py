"""Unit tests for the run context."""

from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

import pytest

from dualsub_core.run_context import TranslationRunContext, now_timestamp
from dualsub_schemas.primitives import CancellationReason, RunId
from dualsub_schemas.subtitles import Line
from dualsub_schemas.translation import TranslationErrorInfo, TranslationErrorKind

type LineFactory = Callable[..., list[Line]]

RUN_ID: RunId = UUID("01890a5c-91c8-7b2a-9f51-9b40d0cfb700")


@pytest.mark.unit
def test_duplicate_line_ids_are_rejected() -> None:
    lines = [
        Line(id=1, start_ms=0, end_ms=10),
        Line(id=1, start_ms=20, end_ms=30),
    ]

    with pytest.raises(ValueError):
        TranslationRunContext(run_id=RUN_ID, lines=lines)


@pytest.mark.unit
def test_apply_translations_filters_outcome(make_lines: LineFactory) -> None:
    lines = make_lines(4)
    lines[3].translated_text = "already"
    run = TranslationRunContext(run_id=RUN_ID, lines=lines)

    applied = run.apply_translations(
        {0: "zero", 1: "   ", 2: "not requested", 3: "again", 99: "unknown"},
        allowed_ids=[0, 1, 3, 99],
    )

    assert applied == [0]
    assert lines[0].translated_text == "zero"
    assert lines[1].translated_text is None
    assert lines[2].translated_text is None
    assert lines[3].translated_text == "already"
    assert run.missing_line_ids() == [1, 2]
    assert run.translated_count() == 2


@pytest.mark.unit
def test_pending_lines_for_subset(make_lines: LineFactory) -> None:
    lines = make_lines(5)
    lines[1].translated_text = "done"
    run = TranslationRunContext(run_id=RUN_ID, lines=lines)

    pending = run.pending_lines([0, 1, 2])

    assert [line.id for line in pending] == [0, 2]


@pytest.mark.unit
def test_preceding_lines_follow_timeline(make_lines: LineFactory) -> None:
    run = TranslationRunContext(run_id=RUN_ID, lines=make_lines(10))

    assert [line.id for line in run.preceding_lines(7, 3)] == [4, 5, 6]
    assert [line.id for line in run.preceding_lines(1, 5)] == [0]
    assert run.preceding_lines(5, 0) == []


@pytest.mark.unit
def test_first_cancel_reason_wins(make_lines: LineFactory) -> None:
    run = TranslationRunContext(run_id=RUN_ID, lines=make_lines(2))
    error = TranslationErrorInfo(
        kind=TranslationErrorKind.AUTHENTICATION, message="bad key"
    )

    run.cancel()
    run.abort(error)

    assert run.cancelled
    assert run.cancel_reason == CancellationReason.USER
    assert run.terminal_error == error


@pytest.mark.unit
@pytest.mark.asyncio
async def test_record_processed_is_bounded(make_lines: LineFactory) -> None:
    run = TranslationRunContext(run_id=RUN_ID, lines=make_lines(4))

    assert await run.record_processed(3) == (3, 75)
    assert await run.record_processed(3) == (4, 100)
    assert run.active_line_count == 0


@pytest.mark.unit
def test_now_timestamp_uses_z_suffix() -> None:
    assert now_timestamp().endswith("Z")
