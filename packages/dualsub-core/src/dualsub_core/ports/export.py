"""Protocol definitions and errors for line export adapters."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import Field

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.subtitles import Line


class ExportErrorCode(StrEnum):
    """Categorized error codes for export failures."""

    VALIDATION_ERROR = "validation_error"
    UNTRANSLATED_TEXT = "untranslated_text"
    IO_ERROR = "io_error"


class ExportErrorInfo(BaseSchema):
    """Structured export error data."""

    code: ExportErrorCode = Field(..., description="Export error code")
    message: str = Field(..., min_length=1, description="Error message")
    output_path: str | None = Field(None, description="Output file path")
    line_ids: list[int] | None = Field(None, description="Offending line ids")


class ExportError(Exception):
    """Export error with structured details."""

    def __init__(self, info: ExportErrorInfo) -> None:
        """Initialize the export error.

        Args:
            info: Structured export error information.
        """
        super().__init__(info.message)
        self.info = info


@runtime_checkable
class ExportAdapterProtocol(Protocol):
    """Protocol for line export adapters."""

    async def write_lines(self, path: Path, lines: list[Line]) -> int:
        """Write lines to a file and return the number written.

        Raises:
            ExportError: When the output cannot be written.
        """
        raise NotImplementedError
