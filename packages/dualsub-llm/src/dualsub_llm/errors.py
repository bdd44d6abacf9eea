"""Map provider exceptions onto the typed translation error taxonomy."""

from __future__ import annotations

import json

import openai
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior

from dualsub_core.ports.translator import TranslationError
from dualsub_schemas.translation import TranslationErrorInfo, TranslationErrorKind

RETRYABLE_STATUS_CODES = frozenset({429, 503})

_QUOTA_MARKERS = ("insufficient_quota", "quota", "billing")

_STATUS_KINDS = {
    401: TranslationErrorKind.AUTHENTICATION,
    402: TranslationErrorKind.QUOTA,
    403: TranslationErrorKind.PERMISSION,
    408: TranslationErrorKind.TIMEOUT,
    429: TranslationErrorKind.RATE_LIMIT,
}


def kind_for_status(
    status_code: int, body: object | None = None
) -> TranslationErrorKind:
    """Return the error kind for an HTTP status and response body.

    A 429 whose body mentions quota or billing is treated as exhausted quota,
    which no amount of waiting will fix.

    Args:
        status_code: HTTP status code from the provider.
        body: Response body if available.

    Returns:
        TranslationErrorKind: Classified failure kind.
    """
    if status_code == 429 and _mentions_quota(body):
        return TranslationErrorKind.QUOTA
    if status_code in _STATUS_KINDS:
        return _STATUS_KINDS[status_code]
    if status_code >= 500:
        return TranslationErrorKind.OVERLOAD
    return TranslationErrorKind.UNKNOWN


def classify_provider_error(
    exc: BaseException, provider: str | None = None
) -> TranslationErrorInfo:
    """Classify an exception raised while calling the provider.

    Args:
        exc: Exception raised by the runtime.
        provider: Provider label for diagnostics.

    Returns:
        TranslationErrorInfo: Structured error information.
    """
    if isinstance(exc, TranslationError):
        return exc.info
    if isinstance(exc, ModelHTTPError):
        return TranslationErrorInfo(
            kind=kind_for_status(exc.status_code, exc.body),
            message=_message_from(exc.body) or str(exc),
            status_code=exc.status_code,
            provider=provider,
        )
    if isinstance(exc, openai.APITimeoutError | TimeoutError):
        return TranslationErrorInfo(
            kind=TranslationErrorKind.TIMEOUT,
            message=str(exc) or "Request timed out",
            provider=provider,
        )
    if isinstance(exc, openai.APIStatusError):
        return TranslationErrorInfo(
            kind=kind_for_status(exc.status_code, exc.body),
            message=exc.message or str(exc),
            status_code=exc.status_code,
            provider=provider,
        )
    if isinstance(exc, UnexpectedModelBehavior):
        return TranslationErrorInfo(
            kind=TranslationErrorKind.INVALID_RESPONSE,
            message=exc.message or str(exc),
            provider=provider,
        )
    return TranslationErrorInfo(
        kind=TranslationErrorKind.UNKNOWN,
        message=str(exc) or type(exc).__name__,
        provider=provider,
    )


def is_retryable_status(info: TranslationErrorInfo) -> bool:
    """Return True for rate-limit and overload responses retried in place.

    Returns:
        bool: Whether the provider call should be retried after a pause.
    """
    return info.status_code in RETRYABLE_STATUS_CODES and not info.is_terminal


def _mentions_quota(body: object | None) -> bool:
    if body is None:
        return False
    text = body if isinstance(body, str) else json.dumps(body, default=str)
    lowered = text.lower()
    return any(marker in lowered for marker in _QUOTA_MARKERS)


def _message_from(body: object | None) -> str | None:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(body.get("message"), str):
            return body["message"]
    if isinstance(body, str) and body.strip():
        return body.strip()
    return None
