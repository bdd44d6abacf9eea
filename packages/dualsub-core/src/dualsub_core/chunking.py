"""Split a line sequence into translation work units."""

from __future__ import annotations

from dualsub_schemas.subtitles import Chunk, Line

CHUNK_SIZE = 40
OVERLAP_SIZE = 5


def plan_chunks(
    lines: list[Line],
    chunk_size: int = CHUNK_SIZE,
    overlap_size: int = OVERLAP_SIZE,
) -> list[Chunk]:
    """Partition lines into contiguous chunks with read-only leading context.

    Args:
        lines: Lines in timeline order.
        chunk_size: Maximum lines owned by one chunk.
        overlap_size: Preceding lines attached as context to each chunk.

    Returns:
        list[Chunk]: Chunks covering every line exactly once, in order.

    Raises:
        ValueError: If chunk_size is not positive or overlap_size is negative.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap_size < 0:
        raise ValueError("overlap_size must not be negative")
    if not lines:
        return []

    offsets = range(0, len(lines), chunk_size)
    total_chunks = len(offsets)
    chunks: list[Chunk] = []
    for position, offset in enumerate(offsets, start=1):
        context_start = max(0, offset - overlap_size)
        chunks.append(
            Chunk(
                lines=list(lines[offset : offset + chunk_size]),
                previous_context=list(lines[context_start:offset]),
                index=position,
                total_chunks=total_chunks,
            )
        )
    return chunks
