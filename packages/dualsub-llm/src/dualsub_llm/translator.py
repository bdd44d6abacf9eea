"""Translator implementation over an OpenAI-compatible LLM runtime."""

from __future__ import annotations

import asyncio
import logging

from dualsub_core.ports.llm import LlmRuntimeProtocol
from dualsub_core.ports.translator import TranslationError, TranslatorProtocol
from dualsub_llm.openai_runtime import OpenAICompatibleRuntime
from dualsub_llm.prompts import (
    SYSTEM_PROMPT,
    build_translation_prompt,
    parse_translation_output,
    visible_length,
)
from dualsub_llm.retry import SleepCallable, run_prompt_with_retry
from dualsub_schemas.config import EndpointConfig, ProviderRetryConfig
from dualsub_schemas.llm import LlmPromptRequest, LlmRuntimeSettings
from dualsub_schemas.subtitles import Line
from dualsub_schemas.translation import TranslationOutcome, TranslationRequest

_log = logging.getLogger(__name__)


class LlmTranslator(TranslatorProtocol):
    """Translate subtitle lines with an OpenAI-compatible chat model."""

    def __init__(
        self,
        endpoint: EndpointConfig,
        api_key: str,
        retry: ProviderRetryConfig | None = None,
        runtime: LlmRuntimeProtocol | None = None,
        sleep: SleepCallable | None = None,
    ) -> None:
        """Initialize the translator.

        Args:
            endpoint: Endpoint settings.
            api_key: API key for the endpoint.
            retry: Provider-level retry policy for 429/503 responses.
            runtime: Runtime adapter; defaults to the pydantic-ai runtime.
            sleep: Awaitable used between provider retries.

        Raises:
            ValueError: If the API key is empty.
        """
        if not api_key:
            raise ValueError("api_key must not be empty")
        self._endpoint = endpoint
        self._api_key = api_key
        self._retry = retry or ProviderRetryConfig()
        self._runtime = runtime or OpenAICompatibleRuntime()
        self._sleep = sleep or asyncio.sleep

    async def translate(self, request: TranslationRequest) -> TranslationOutcome:
        """Translate the requested lines.

        Translations longer than the model's visible character limit are
        re-requested once with a condense instruction. Shorter replies from
        that retry replace the originals.

        Args:
            request: Translation request.

        Returns:
            TranslationOutcome: Partial or complete id to text mapping.

        Raises:
            TranslationError: When the provider call fails.
        """
        outcome = await self._request(request, request.lines, condense=False)
        limit = request.model.max_line_chars
        too_long = [
            line
            for line in request.lines
            if line.id in outcome and visible_length(outcome[line.id]) > limit
        ]
        if not too_long:
            return outcome

        try:
            condensed = await self._request(request, too_long, condense=True)
        except TranslationError as exc:
            if exc.is_terminal:
                raise
            _log.warning("Condense retry failed, keeping long translations: %s", exc)
            return outcome
        outcome.update(condensed)
        return outcome

    async def _request(
        self, request: TranslationRequest, lines: list[Line], condense: bool
    ) -> TranslationOutcome:
        prompt_request = LlmPromptRequest(
            runtime=LlmRuntimeSettings(
                endpoint=self._endpoint, model=request.model, retry=self._retry
            ),
            prompt=build_translation_prompt(request, lines, condense=condense),
            system_prompt=SYSTEM_PROMPT,
        )
        requested_ids = frozenset(line.id for line in lines)
        response = await run_prompt_with_retry(
            self._runtime, prompt_request, api_key=self._api_key, sleep=self._sleep
        )
        return parse_translation_output(response.output_text, requested_ids)
