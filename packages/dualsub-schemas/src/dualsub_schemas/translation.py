"""Translator boundary contracts and run results."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.config import ModelSettings
from dualsub_schemas.primitives import LineId, Milliseconds, RunId, RunStatus
from dualsub_schemas.subtitles import Line

type TranslationOutcome = dict[LineId, str]


class TranslationErrorKind(StrEnum):
    """Typed failure discriminant returned by the translator boundary."""

    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    OVERLOAD = "overload"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


TERMINAL_ERROR_KINDS = frozenset({
    TranslationErrorKind.AUTHENTICATION,
    TranslationErrorKind.PERMISSION,
    TranslationErrorKind.QUOTA,
})


def is_terminal_kind(kind: TranslationErrorKind | str) -> bool:
    """Return True when retrying cannot fix a failure of this kind.

    Returns:
        bool: Whether the kind halts the run.
    """
    return TranslationErrorKind(kind) in TERMINAL_ERROR_KINDS


class TranslationErrorInfo(BaseSchema):
    """Structured translator failure data."""

    kind: TranslationErrorKind = Field(..., description="Failure kind")
    message: str = Field(..., min_length=1, description="Error message")
    status_code: int | None = Field(None, description="HTTP status if available")
    provider: str | None = Field(None, description="Provider label if available")

    @property
    def is_terminal(self) -> bool:
        """Return True for authentication, permission and quota failures."""
        return is_terminal_kind(self.kind)


class TranslationRequest(BaseSchema):
    """Everything the translator needs for one request."""

    lines: list[Line] = Field(..., min_length=1, description="Lines to translate")
    target_language: str = Field(..., min_length=1, description="Target language")
    context: str | None = Field(None, description="Plot or setting summary")
    previous_lines: list[Line] = Field(
        default_factory=list, description="Context-only preceding lines"
    )
    model: ModelSettings = Field(..., description="Model settings")
    duration_budget: dict[LineId, Milliseconds] = Field(
        default_factory=dict, description="Max safe duration per requested id"
    )
    glossary: str | None = Field(None, description="Names and terms to keep fixed")


class TranslationRunResult(BaseSchema):
    """Final state of one file's translation run."""

    run_id: RunId = Field(..., description="Run identifier")
    status: RunStatus = Field(..., description="Final run status")
    message: str = Field(..., min_length=1, description="User-visible status message")
    total_lines: int = Field(..., ge=0, description="Lines in the run")
    translated_lines: int = Field(..., ge=0, description="Resolved line count")
    missing_line_ids: list[LineId] = Field(
        default_factory=list, description="Lines still lacking a translation"
    )
    error: TranslationErrorInfo | None = Field(
        None, description="Terminal translator error when the run stopped"
    )

    @property
    def missing_count(self) -> int:
        """Return the number of unresolved lines."""
        return len(self.missing_line_ids)
