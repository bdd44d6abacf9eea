"""Duration budgeting and post-translation timing optimization."""

from __future__ import annotations

import re

from dualsub_schemas.config import TimingConfig
from dualsub_schemas.subtitles import DurationBudget, Line

HARD_CAP_MS = 6000
MIN_GAP_MS = 50

_TAG_PATTERN = re.compile(r"<[^>]*>|\{[^}]*\}")
_BREAK_PATTERN = re.compile(r"\[br\]|\\N|\\n|\r?\n", re.IGNORECASE)


def strip_markup(text: str | None) -> str:
    """Return the visible characters of a cue.

    Formatting tags, ASS override blocks and line break markers are removed.

    Args:
        text: Raw cue text.

    Returns:
        str: Text as a viewer would read it.
    """
    if not text:
        return ""
    visible = _TAG_PATTERN.sub("", text)
    visible = _BREAK_PATTERN.sub("", visible)
    return visible.strip()


def compute_duration_budgets(
    lines: list[Line],
    hard_cap_ms: int = HARD_CAP_MS,
    min_gap_ms: int = MIN_GAP_MS,
) -> DurationBudget:
    """Compute the maximum safe display duration for every line.

    Each line may extend up to the hard cap, but never closer than
    ``min_gap_ms`` to the next line's start.

    Args:
        lines: Lines in timeline order, before translation.
        hard_cap_ms: Absolute ceiling on any line's duration.
        min_gap_ms: Gap required before the following line.

    Returns:
        DurationBudget: Mapping of line id to budget in milliseconds.
    """
    budgets: DurationBudget = {}
    for index, line in enumerate(lines):
        ceiling = line.start_ms + hard_cap_ms
        if index + 1 < len(lines):
            ceiling = min(ceiling, lines[index + 1].start_ms - min_gap_ms)
        budgets[line.id] = max(0, ceiling - line.start_ms)
    return budgets


def optimize_timings(
    lines: list[Line],
    settings: TimingConfig | None = None,
    enabled: bool = True,
) -> list[Line]:
    """Re-derive end times from text length without creating overlaps.

    Args:
        lines: Lines in timeline order.
        settings: Timing constants; defaults apply when omitted.
        enabled: When False the lines are copied unchanged.

    Returns:
        list[Line]: New line objects with adjusted ``end_ms``.
    """
    settings = settings or TimingConfig()
    optimized = [line.model_copy() for line in lines]
    if not enabled:
        return optimized

    for index, line in enumerate(optimized):
        visible_chars = max(
            len(strip_markup(line.source_text)),
            len(strip_markup(line.translated_text)),
        )
        reading_ms = visible_chars / settings.chars_per_second * 1000
        target_ms = min(max(line.duration_ms, reading_ms), settings.max_duration_ms)
        if visible_chars > 0:
            target_ms = max(target_ms, settings.min_duration_ms)

        end_ms = line.start_ms + round(target_ms)
        if index + 1 < len(optimized):
            next_start = optimized[index + 1].start_ms
            end_ms = min(end_ms, next_start - settings.min_gap_ms)
        if end_ms <= line.start_ms:
            # Neighbours leave no room; keep a sliver so start < end holds.
            end_ms = line.start_ms + settings.fallback_duration_ms
        line.end_ms = end_ms
    return optimized
