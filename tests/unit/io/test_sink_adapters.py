"""Unit tests for log/progress sink adapters."""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path
from uuid import UUID

import pytest

from dualsub_core.ports.orchestrator import LogSinkProtocol
from dualsub_io.storage import (
    CallbackProgressSink,
    CompositeLogSink,
    CompositeProgressSink,
    ConsoleLogSink,
    FileLogSink,
    FileSystemProgressSink,
    InMemoryProgressSink,
    NoopLogSink,
    build_log_sink,
)
from dualsub_schemas.config import LoggingConfig, LogSinkConfig
from dualsub_schemas.events import ProgressEvent, RunEvent
from dualsub_schemas.logs import LogEntry
from dualsub_schemas.primitives import LogLevel, LogSinkType, RunId, RunStatus
from dualsub_schemas.progress import ProgressUpdate


class _StubLogSink(LogSinkProtocol):
    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def emit_log(self, entry: LogEntry) -> None:
        self.entries.append(entry)


RUN_ID: RunId = UUID("01890a5c-91c8-7b2a-9f51-9b40d0cfb700")


def _build_log_entry() -> LogEntry:
    return LogEntry(
        timestamp="2026-01-26T12:00:00Z",
        level=LogLevel.INFO,
        event=RunEvent.STARTED,
        run_id=RUN_ID,
        message="Translating 4 of 4 lines",
        data={"total_lines": 4},
    )


def _build_progress_update(percent: int = 50) -> ProgressUpdate:
    return ProgressUpdate(
        run_id=RUN_ID,
        event=ProgressEvent.RUN_PROGRESS,
        timestamp="2026-01-26T12:00:00Z",
        status=RunStatus.RUNNING,
        percent=percent,
        message=f"Translating... {percent}%",
        completed_lines=2,
        total_lines=4,
    )


def test_file_log_sink_appends_jsonl(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "run.jsonl"
    sink = FileLogSink(path)

    asyncio.run(sink.emit_log(_build_log_entry()))
    asyncio.run(sink.emit_log(_build_log_entry()))

    rows = path.read_text(encoding="utf-8").splitlines()
    assert len(rows) == 2
    payload = json.loads(rows[0])
    assert payload["event"] == "run_started"
    assert payload["run_id"] == str(RUN_ID)
    assert "phase" not in payload


def test_console_log_sink_writes_stream() -> None:
    stream = io.StringIO()

    asyncio.run(ConsoleLogSink(stream=stream).emit_log(_build_log_entry()))

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "Translating 4 of 4 lines"


def test_composite_log_sink_fans_out() -> None:
    first = _StubLogSink()
    second = _StubLogSink()

    asyncio.run(CompositeLogSink([first, second]).emit_log(_build_log_entry()))

    assert len(first.entries) == 1
    assert len(second.entries) == 1


def test_build_log_sink_single_console_sink() -> None:
    sink = build_log_sink(LoggingConfig())

    assert isinstance(sink, ConsoleLogSink)


def test_build_log_sink_composite(tmp_path: Path) -> None:
    config = LoggingConfig(
        sinks=[
            LogSinkConfig(type=LogSinkType.FILE),
            LogSinkConfig(type=LogSinkType.NOOP),
        ]
    )

    sink = build_log_sink(config, tmp_path / "run.jsonl")

    assert isinstance(sink, CompositeLogSink)


def test_build_log_sink_noop() -> None:
    config = LoggingConfig(sinks=[LogSinkConfig(type=LogSinkType.NOOP)])

    assert isinstance(build_log_sink(config), NoopLogSink)


def test_build_log_sink_file_requires_path() -> None:
    config = LoggingConfig(sinks=[LogSinkConfig(type=LogSinkType.FILE)])

    with pytest.raises(ValueError):
        build_log_sink(config)


def test_filesystem_progress_sink_appends_jsonl(tmp_path: Path) -> None:
    path = tmp_path / "progress.jsonl"
    sink = FileSystemProgressSink(path)

    asyncio.run(sink.emit_progress(_build_progress_update(25)))
    asyncio.run(sink.emit_progress(_build_progress_update(50)))

    rows = [json.loads(row) for row in path.read_text(encoding="utf-8").splitlines()]
    assert [row["percent"] for row in rows] == [25, 50]


def test_composite_progress_sink_fans_out() -> None:
    first = InMemoryProgressSink()
    second = InMemoryProgressSink()

    asyncio.run(
        CompositeProgressSink([first, second]).emit_progress(_build_progress_update())
    )

    assert len(first.updates) == 1
    assert len(second.updates) == 1


def test_callback_progress_sink_accepts_sync_callback() -> None:
    received: list[tuple[int, str]] = []

    def on_progress(percent: int, message: str) -> None:
        received.append((percent, message))

    sink = CallbackProgressSink(on_progress)
    asyncio.run(sink.emit_progress(_build_progress_update()))

    assert received == [(50, "Translating... 50%")]


def test_callback_progress_sink_awaits_async_callback() -> None:
    received: list[int] = []

    async def on_progress(percent: int, message: str) -> None:
        received.append(percent)

    asyncio.run(
        CallbackProgressSink(on_progress).emit_progress(_build_progress_update(75))
    )

    assert received == [75]
