"""dualsub-io: Line adapters and run sinks."""

from dualsub_io.export import JsonlExportAdapter
from dualsub_io.ingest import JsonlIngestAdapter
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

__all__ = [
    "CallbackProgressSink",
    "CompositeLogSink",
    "CompositeProgressSink",
    "ConsoleLogSink",
    "FileLogSink",
    "FileSystemProgressSink",
    "InMemoryProgressSink",
    "JsonlExportAdapter",
    "JsonlIngestAdapter",
    "NoopLogSink",
    "build_log_sink",
]
