"""Run-scoped state shared by the worker pool and verification sweep."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from dualsub_schemas.primitives import CancellationReason, LineId, RunId, Timestamp
from dualsub_schemas.progress import compute_percent
from dualsub_schemas.subtitles import Line
from dualsub_schemas.translation import TranslationErrorInfo, TranslationOutcome


@dataclass(slots=True)
class TranslationRunContext:
    """In-memory state for one file's translation run.

    Lines are only written through ``apply_translations``. Counter updates go
    through ``record_processed``, which serializes them on the context lock.
    """

    run_id: RunId
    lines: list[Line]
    completed_line_count: int = 0
    active_line_count: int = 0
    last_percent: int = 0
    cancel_reason: CancellationReason | None = None
    terminal_error: TranslationErrorInfo | None = None
    _lines_by_id: dict[LineId, Line] = field(default_factory=dict, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self) -> None:
        """Index lines by id and reset the counters.

        Raises:
            ValueError: If two lines share an id.
        """
        self._lines_by_id = {line.id: line for line in self.lines}
        if len(self._lines_by_id) != len(self.lines):
            raise ValueError("line ids must be unique within a run")
        self.active_line_count = len(self.lines)

    @property
    def total_lines(self) -> int:
        """Return the number of lines in the run."""
        return len(self.lines)

    @property
    def cancelled(self) -> bool:
        """Return True once the run stopped dispatching new work."""
        return self.cancel_reason is not None

    def cancel(self, reason: CancellationReason = CancellationReason.USER) -> None:
        """Request cooperative cancellation.

        In-flight translator calls finish; nothing new is dispatched. The
        first reason recorded wins.

        Args:
            reason: Why the run is being cancelled.
        """
        if self.cancel_reason is None:
            self.cancel_reason = reason

    def abort(self, error: TranslationErrorInfo) -> None:
        """Stop the run because of a terminal translator error.

        Args:
            error: Terminal failure reported by the translator.
        """
        if self.terminal_error is None:
            self.terminal_error = error
        self.cancel(CancellationReason.TERMINAL_ERROR)

    def get_line(self, line_id: LineId) -> Line:
        """Return the line with the given id.

        Raises:
            KeyError: If the id is not part of this run.
        """
        return self._lines_by_id[line_id]

    def pending_lines(self, line_ids: Iterable[LineId] | None = None) -> list[Line]:
        """Return lines still lacking a translation, in timeline order.

        Args:
            line_ids: Optional subset of ids to consider.

        Returns:
            list[Line]: Unresolved lines.
        """
        if line_ids is None:
            return [line for line in self.lines if not line.is_resolved]
        return [
            self._lines_by_id[line_id]
            for line_id in line_ids
            if not self._lines_by_id[line_id].is_resolved
        ]

    def missing_line_ids(self) -> list[LineId]:
        """Return ids of unresolved lines in timeline order."""
        return [line.id for line in self.pending_lines()]

    def translated_count(self) -> int:
        """Return the number of resolved lines."""
        return sum(1 for line in self.lines if line.is_resolved)

    def preceding_lines(self, line_id: LineId, count: int) -> list[Line]:
        """Return up to ``count`` timeline lines before ``line_id``.

        Returns:
            list[Line]: Context lines in timeline order.
        """
        if count <= 0:
            return []
        index = self.lines.index(self._lines_by_id[line_id])
        return list(self.lines[max(0, index - count) : index])

    def apply_translations(
        self, outcome: TranslationOutcome, allowed_ids: Iterable[LineId]
    ) -> list[LineId]:
        """Write translated text onto requested, still unresolved lines.

        Ids outside ``allowed_ids``, blank texts and lines already resolved
        are ignored.

        Args:
            outcome: Partial or complete id to text mapping.
            allowed_ids: Ids that were part of the request.

        Returns:
            list[LineId]: Ids that received a translation.
        """
        allowed = set(allowed_ids)
        applied: list[LineId] = []
        for line_id, text in outcome.items():
            if line_id not in allowed or not isinstance(text, str):
                continue
            line = self._lines_by_id.get(line_id)
            if line is None or line.is_resolved or not text.strip():
                continue
            line.translated_text = text
            applied.append(line_id)
        return applied

    async def record_processed(self, line_count: int) -> tuple[int, int]:
        """Move a processed chunk's lines from active to completed.

        Args:
            line_count: Lines owned by the processed chunk.

        Returns:
            tuple[int, int]: Completed line count and the monotonic percent.
        """
        async with self._lock:
            self.active_line_count = max(0, self.active_line_count - line_count)
            self.completed_line_count = min(
                self.total_lines, self.completed_line_count + line_count
            )
            percent = compute_percent(self.completed_line_count, self.total_lines)
            self.last_percent = max(self.last_percent, percent)
            return self.completed_line_count, self.last_percent


def now_timestamp() -> Timestamp:
    """Return the current UTC time as an ISO-8601 string.

    Returns:
        Timestamp: Timestamp with a ``Z`` suffix.
    """
    value = datetime.now(tz=UTC).isoformat()
    return value.replace("+00:00", "Z")
