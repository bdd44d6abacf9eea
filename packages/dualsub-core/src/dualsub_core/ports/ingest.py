"""Protocol definitions and errors for line ingest adapters."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import Field

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.subtitles import Line


class IngestErrorCode(StrEnum):
    """Categorized error codes for ingest failures."""

    PARSE_ERROR = "parse_error"
    VALIDATION_ERROR = "validation_error"
    DUPLICATE_ID = "duplicate_id"
    IO_ERROR = "io_error"


class IngestErrorDetails(BaseSchema):
    """Detailed ingest error context."""

    field: str | None = Field(None, description="Field associated with the error")
    line_number: int | None = Field(None, ge=1, description="Line number if applicable")
    provided: str | None = Field(None, description="Provided value if available")
    source_path: str | None = Field(None, description="Source file path")


class IngestErrorInfo(BaseSchema):
    """Structured ingest error data."""

    code: IngestErrorCode = Field(..., description="Ingest error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: IngestErrorDetails | None = Field(None, description="Error details")

    def describe(self) -> str:
        """Return the message prefixed with its location when known.

        Returns:
            str: Human readable error description.
        """
        if self.details is not None and self.details.line_number is not None:
            return f"line {self.details.line_number}: {self.message}"
        return self.message


class IngestError(Exception):
    """Ingest error with structured details."""

    def __init__(self, info: IngestErrorInfo) -> None:
        """Initialize the ingest error.

        Args:
            info: Structured ingest error information.
        """
        super().__init__(info.message)
        self.info = info


class IngestBatchError(Exception):
    """Ingest error containing multiple issues."""

    def __init__(self, errors: list[IngestErrorInfo]) -> None:
        """Initialize the batch ingest error.

        Args:
            errors: Collected ingest errors.
        """
        super().__init__(f"{len(errors)} ingest errors")
        self.errors = errors


@runtime_checkable
class IngestAdapterProtocol(Protocol):
    """Protocol for line ingest adapters."""

    async def load_lines(self, path: Path) -> list[Line]:
        """Load timed lines from a file.

        Raises:
            IngestError: For fatal ingest errors.
            IngestBatchError: For per-record validation issues.
        """
        raise NotImplementedError
