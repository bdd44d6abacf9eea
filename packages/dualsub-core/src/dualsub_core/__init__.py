"""dualsub-core: Chunked translation and timing logic for dualsub."""

from dualsub_core.alignment import estimate_drift_ratio, merge_translated_track
from dualsub_core.chunking import plan_chunks
from dualsub_core.pipeline import TranslationPipeline
from dualsub_core.ports import (
    ExportAdapterProtocol,
    ExportError,
    IngestAdapterProtocol,
    IngestBatchError,
    IngestError,
    LogSinkProtocol,
    ProgressSinkProtocol,
    TranslationError,
    TranslatorProtocol,
)
from dualsub_core.run_context import TranslationRunContext
from dualsub_core.timing import compute_duration_budgets, optimize_timings
from dualsub_core.verification import VerificationSweep
from dualsub_core.version import VERSION
from dualsub_core.worker_pool import ChunkState, ChunkWorkerPool

__version__ = str(VERSION)

__all__ = [
    "VERSION",
    "ChunkState",
    "ChunkWorkerPool",
    "ExportAdapterProtocol",
    "ExportError",
    "IngestAdapterProtocol",
    "IngestBatchError",
    "IngestError",
    "LogSinkProtocol",
    "ProgressSinkProtocol",
    "TranslationError",
    "TranslationPipeline",
    "TranslationRunContext",
    "TranslatorProtocol",
    "VerificationSweep",
    "compute_duration_budgets",
    "estimate_drift_ratio",
    "merge_translated_track",
    "optimize_timings",
    "plan_chunks",
]
