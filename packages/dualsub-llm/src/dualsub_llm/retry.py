"""Provider-level retry loop shared by translation and helper prompts."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from dualsub_core.ports.llm import LlmRuntimeProtocol
from dualsub_core.ports.translator import TranslationError
from dualsub_llm.errors import classify_provider_error, is_retryable_status
from dualsub_schemas.llm import LlmPromptRequest, LlmPromptResponse

_log = logging.getLogger(__name__)

type SleepCallable = Callable[[float], Awaitable[None]]


async def run_prompt_with_retry(
    runtime: LlmRuntimeProtocol,
    request: LlmPromptRequest,
    *,
    api_key: str,
    sleep: SleepCallable,
) -> LlmPromptResponse:
    """Run a prompt, retrying rate-limit and overload responses.

    Delays double from ``request.runtime.retry.backoff_s`` (2s, 4s, 8s with
    the defaults).

    Args:
        runtime: Runtime adapter.
        request: Prompt request, including endpoint and retry settings.
        api_key: API key for the endpoint.
        sleep: Awaitable used between attempts.

    Returns:
        LlmPromptResponse: First successful reply.

    Raises:
        TranslationError: When the call fails with a non-retryable error or
            the retries run out.
    """
    retry = request.runtime.retry
    provider = request.runtime.endpoint.provider_name
    retries_left = retry.max_retries
    attempt = 0
    while True:
        try:
            return await runtime.run_prompt(request, api_key=api_key)
        except Exception as exc:
            info = classify_provider_error(exc, provider)
            if retries_left > 0 and is_retryable_status(info):
                delay = retry.backoff_s * (2**attempt)
                _log.warning(
                    "Provider returned %s, retrying in %.1fs",
                    info.status_code,
                    delay,
                )
                retries_left -= 1
                attempt += 1
                await sleep(delay)
                continue
            raise TranslationError(info) from exc
