"""Port protocols for dualsub adapters."""

from dualsub_core.ports.export import (
    ExportAdapterProtocol,
    ExportError,
    ExportErrorCode,
    ExportErrorInfo,
)
from dualsub_core.ports.ingest import (
    IngestAdapterProtocol,
    IngestBatchError,
    IngestError,
    IngestErrorCode,
    IngestErrorDetails,
    IngestErrorInfo,
)
from dualsub_core.ports.llm import LlmRuntimeProtocol
from dualsub_core.ports.orchestrator import (
    LogSinkProtocol,
    ProgressSinkProtocol,
    RunErrorCode,
)
from dualsub_core.ports.translator import (
    TranslationError,
    TranslatorProtocol,
    classify_exception,
)

__all__ = [
    "ExportAdapterProtocol",
    "ExportError",
    "ExportErrorCode",
    "ExportErrorInfo",
    "IngestAdapterProtocol",
    "IngestBatchError",
    "IngestError",
    "IngestErrorCode",
    "IngestErrorDetails",
    "IngestErrorInfo",
    "LlmRuntimeProtocol",
    "LogSinkProtocol",
    "ProgressSinkProtocol",
    "RunErrorCode",
    "TranslationError",
    "TranslatorProtocol",
    "classify_exception",
]
