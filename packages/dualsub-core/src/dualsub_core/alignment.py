"""Merge an externally sourced translated track onto the source timeline.

The translated track may come from a release with a different frame rate, so
its timestamps drift linearly against the source. The aligner picks the
frame-rate ratio that best explains the drift, then matches cues with dynamic
time warping over cue midpoints.
"""

from __future__ import annotations

import math

from dualsub_core.timing import optimize_timings
from dualsub_schemas.config import TimingConfig
from dualsub_schemas.subtitles import Line

LINE_BREAK = "[br]"

DRIFT_RATIOS: tuple[float, ...] = (
    1.0,
    25 / 24,
    24 / 25,
    25 / 23.976,
    23.976 / 25,
    24 / 23.976,
    23.976 / 24,
    30 / 25,
    25 / 30,
)

DEFAULT_WINDOW = 200

type AlignmentPath = list[tuple[int, int]]


def estimate_drift_ratio(
    source: list[Line],
    translated: list[Line],
    window: int = DEFAULT_WINDOW,
) -> float:
    """Return the frame-rate ratio that best maps the translated track.

    A translated midpoint ``t`` is compared against source time ``t / ratio``.
    Ties keep the earlier ratio, so an unshifted track stays at 1.0.

    Args:
        source: Source lines in timeline order.
        translated: Translated track in timeline order.
        window: Band half-width for the warping search.

    Returns:
        float: Ratio from ``DRIFT_RATIOS``.
    """
    if not source or not translated:
        return 1.0
    source_mids = _midpoints(source)
    translated_mids = _midpoints(translated)
    best_ratio = DRIFT_RATIOS[0]
    best_cost = math.inf
    for ratio in DRIFT_RATIOS:
        scaled = [mid / ratio for mid in translated_mids]
        cost, _ = align_midpoints(source_mids, scaled, window)
        if cost < best_cost:
            best_cost = cost
            best_ratio = ratio
    return best_ratio


def align_midpoints(
    source_mids: list[float],
    target_mids: list[float],
    window: int = DEFAULT_WINDOW,
) -> tuple[float, AlignmentPath]:
    """Align two midpoint sequences with banded dynamic time warping.

    The band follows the scaled diagonal so sequences of different lengths
    still meet at both ends.

    Args:
        source_mids: Source cue midpoints.
        target_mids: Target cue midpoints, already drift-corrected.
        window: Band half-width in cells.

    Returns:
        tuple[float, AlignmentPath]: Total cost and (source, target) index
        pairs in order.
    """
    rows = len(source_mids)
    cols = len(target_mids)
    if rows == 0 or cols == 0:
        return 0.0, []
    band = max(window, math.ceil(cols / rows) + 1, math.ceil(rows / cols) + 1)
    cost = [[math.inf] * (cols + 1) for _ in range(rows + 1)]
    cost[0][0] = 0.0
    for i in range(1, rows + 1):
        center = round(i * cols / rows)
        low = max(1, center - band)
        high = min(cols, center + band)
        source_mid = source_mids[i - 1]
        previous_row = cost[i - 1]
        row = cost[i]
        for j in range(low, high + 1):
            best = min(previous_row[j - 1], previous_row[j], row[j - 1])
            if best == math.inf:
                continue
            row[j] = abs(source_mid - target_mids[j - 1]) + best

    path: AlignmentPath = []
    i, j = rows, cols
    while i > 0 and j > 0:
        path.append((i - 1, j - 1))
        diagonal = cost[i - 1][j - 1]
        up = cost[i - 1][j]
        left = cost[i][j - 1]
        if diagonal <= up and diagonal <= left:
            i, j = i - 1, j - 1
        elif up <= left:
            i -= 1
        else:
            j -= 1
    path.reverse()
    return cost[rows][cols], path


def merge_translated_track(
    source: list[Line],
    translated: list[Line],
    optimize: bool = True,
    settings: TimingConfig | None = None,
    window: int = DEFAULT_WINDOW,
) -> list[Line]:
    """Attach translated cue text to the matching source cues.

    Text is taken from each translated cue's ``translated_text`` when present
    and from its ``source_text`` otherwise. Several translated cues landing on
    one source cue are joined with ``[br]``. When a translated cue matches a
    run of source cues it goes to the closest one.

    Args:
        source: Source lines in timeline order.
        translated: Translated track in timeline order.
        optimize: Whether to run the timing optimizer afterwards.
        settings: Timing constants for the optimizer.
        window: Band half-width for the warping search.

    Returns:
        list[Line]: New source lines carrying ``translated_text``.
    """
    merged = [line.model_copy() for line in source]
    cues = [cue for cue in translated if _cue_text(cue)]
    if not merged or not cues:
        return merged

    ratio = estimate_drift_ratio(merged, cues, window)
    source_mids = _midpoints(merged)
    scaled_mids = [mid / ratio for mid in _midpoints(cues)]
    _, path = align_midpoints(source_mids, scaled_mids, window)

    best_match: dict[int, int] = {}
    for source_index, cue_index in path:
        current = best_match.get(cue_index)
        distance = abs(source_mids[source_index] - scaled_mids[cue_index])
        if current is None or distance < abs(
            source_mids[current] - scaled_mids[cue_index]
        ):
            best_match[cue_index] = source_index

    texts: dict[int, list[str]] = {}
    for cue_index in sorted(best_match):
        texts.setdefault(best_match[cue_index], []).append(_cue_text(cues[cue_index]))
    for source_index, parts in texts.items():
        merged[source_index].translated_text = LINE_BREAK.join(parts)

    if optimize:
        return optimize_timings(merged, settings)
    return merged


def _cue_text(line: Line) -> str:
    return (line.translated_text or line.source_text).strip()


def _midpoints(lines: list[Line]) -> list[float]:
    return [(line.start_ms + line.end_ms) / 2 for line in lines]
