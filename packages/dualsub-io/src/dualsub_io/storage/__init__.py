"""Log and progress sink adapters."""

from dualsub_io.storage.log_sink import (
    CompositeLogSink,
    ConsoleLogSink,
    FileLogSink,
    NoopLogSink,
    build_log_sink,
)
from dualsub_io.storage.progress_sink import (
    CallbackProgressSink,
    CompositeProgressSink,
    FileSystemProgressSink,
    InMemoryProgressSink,
)

__all__ = [
    "CallbackProgressSink",
    "CompositeLogSink",
    "CompositeProgressSink",
    "ConsoleLogSink",
    "FileLogSink",
    "FileSystemProgressSink",
    "InMemoryProgressSink",
    "NoopLogSink",
    "build_log_sink",
]
