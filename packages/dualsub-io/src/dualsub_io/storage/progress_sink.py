"""Progress sink adapters for streaming updates."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path

from dualsub_core.ports.orchestrator import ProgressSinkProtocol
from dualsub_io.storage.jsonl import append_jsonl
from dualsub_schemas.progress import ProgressUpdate

type ProgressCallback = Callable[[int, str], Awaitable[None] | None]


class FileSystemProgressSink(ProgressSinkProtocol):
    """Progress sink that appends JSONL updates to a file."""

    def __init__(self, path: Path | str) -> None:
        """Initialize the progress sink with a file path."""
        self._path = Path(path)

    async def emit_progress(self, update: ProgressUpdate) -> None:
        """Append a progress update to the JSONL file."""
        await asyncio.to_thread(append_jsonl, self._path, update)


class InMemoryProgressSink(ProgressSinkProtocol):
    """Progress sink that stores updates in memory."""

    def __init__(self) -> None:
        """Initialize the in-memory progress sink."""
        self._updates: list[ProgressUpdate] = []

    @property
    def updates(self) -> list[ProgressUpdate]:
        """Return a copy of stored progress updates."""
        return list(self._updates)

    async def emit_progress(self, update: ProgressUpdate) -> None:
        """Store a progress update in memory."""
        self._updates.append(update)


class CompositeProgressSink(ProgressSinkProtocol):
    """Progress sink that forwards updates to multiple sinks."""

    def __init__(self, sinks: Iterable[ProgressSinkProtocol]) -> None:
        """Initialize the composite progress sink."""
        self._sinks = list(sinks)

    async def emit_progress(self, update: ProgressUpdate) -> None:
        """Forward progress updates to each sink."""
        for sink in self._sinks:
            await sink.emit_progress(update)


class CallbackProgressSink(ProgressSinkProtocol):
    """Progress sink that calls ``on_progress(percent, message)``.

    Sync and async callables are both accepted.
    """

    def __init__(self, on_progress: ProgressCallback) -> None:
        """Initialize the callback progress sink."""
        self._on_progress = on_progress

    async def emit_progress(self, update: ProgressUpdate) -> None:
        """Forward percent and message to the callback."""
        result = self._on_progress(update.percent, update.message)
        if inspect.isawaitable(result):
            await result
