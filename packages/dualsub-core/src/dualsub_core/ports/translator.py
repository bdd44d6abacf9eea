"""Protocol and errors for the translator boundary."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from dualsub_schemas.translation import (
    TranslationErrorInfo,
    TranslationErrorKind,
    TranslationOutcome,
    TranslationRequest,
)


class TranslationError(Exception):
    """Translator failure with a typed kind."""

    def __init__(self, info: TranslationErrorInfo) -> None:
        """Initialize the translation error.

        Args:
            info: Structured translator error information.
        """
        super().__init__(info.message)
        self.info = info

    @property
    def kind(self) -> TranslationErrorKind:
        """Return the failure kind."""
        return TranslationErrorKind(self.info.kind)

    @property
    def is_terminal(self) -> bool:
        """Return True when the run must stop instead of retrying."""
        return self.info.is_terminal


@runtime_checkable
class TranslatorProtocol(Protocol):
    """Stateless request/response translation service.

    Implementations return a partial or complete id to text mapping. Ids the
    service omitted are simply absent. Failures raise TranslationError.
    """

    async def translate(self, request: TranslationRequest) -> TranslationOutcome:
        """Translate the requested lines."""
        raise NotImplementedError


def classify_exception(exc: BaseException) -> TranslationErrorInfo:
    """Map any translator exception onto the typed taxonomy.

    Exceptions that did not come through the typed boundary are treated as
    transient so the retry policy gets a chance to recover.

    Args:
        exc: Exception raised by a translator call.

    Returns:
        TranslationErrorInfo: Structured error information.
    """
    if isinstance(exc, TranslationError):
        return exc.info
    if isinstance(exc, TimeoutError):
        return TranslationErrorInfo(
            kind=TranslationErrorKind.TIMEOUT,
            message=str(exc) or "Translator request timed out",
        )
    return TranslationErrorInfo(
        kind=TranslationErrorKind.UNKNOWN,
        message=str(exc) or type(exc).__name__,
    )
