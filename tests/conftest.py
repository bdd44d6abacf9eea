"""Common pytest configuration."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from dualsub_schemas.subtitles import Line

type LineFactory = Callable[..., list[Line]]


def build_lines(
    count: int,
    *,
    start_id: int = 0,
    spacing_ms: int = 2000,
    duration_ms: int = 1500,
) -> list[Line]:
    """Build evenly spaced untranslated lines.

    Returns:
        list[Line]: Lines with ids ``start_id`` onward.
    """
    return [
        Line(
            id=start_id + index,
            start_ms=index * spacing_ms,
            end_ms=index * spacing_ms + duration_ms,
            source_text=f"line {start_id + index}",
        )
        for index in range(count)
    ]


@pytest.fixture
def make_lines() -> LineFactory:
    """Expose the line builder as a fixture.

    Returns:
        LineFactory: Callable building evenly spaced lines.
    """
    return build_lines
