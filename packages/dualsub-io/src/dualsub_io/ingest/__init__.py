"""Ingest adapters for timed lines."""

from dualsub_io.ingest.jsonl_adapter import JsonlIngestAdapter

__all__ = ["JsonlIngestAdapter"]
