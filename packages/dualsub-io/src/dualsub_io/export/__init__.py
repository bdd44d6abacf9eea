"""Export adapters for timed lines."""

from dualsub_io.export.jsonl_adapter import JsonlExportAdapter

__all__ = ["JsonlExportAdapter"]
