"""Shared JSONL append helper for file-backed sinks."""

from __future__ import annotations

from pathlib import Path

from dualsub_schemas.base import BaseSchema


def append_jsonl(path: Path, payload: BaseSchema) -> None:
    """Append one schema instance to a JSONL file, creating parents."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload_json = payload.model_dump_json(exclude_none=True)
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(payload_json + "\n")
