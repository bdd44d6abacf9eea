"""Pre-run helpers: plot context, source language detection and glossary."""

from __future__ import annotations

import asyncio
import logging

from dualsub_core.ports.llm import LlmRuntimeProtocol
from dualsub_core.ports.translator import TranslationError
from dualsub_llm.openai_runtime import OpenAICompatibleRuntime
from dualsub_llm.prompts import (
    HELPER_SYSTEM_PROMPT,
    build_context_prompt,
    build_glossary_prompt,
    build_language_prompt,
    language_sample,
    parse_language_name,
)
from dualsub_llm.retry import SleepCallable, run_prompt_with_retry
from dualsub_schemas.config import EndpointConfig, ModelSettings, ProviderRetryConfig
from dualsub_schemas.llm import (
    LanguageDetection,
    LlmPromptRequest,
    LlmRuntimeSettings,
)
from dualsub_schemas.subtitles import Line

_log = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "English"


class SubtitleAssistant:
    """Ask the model for metadata that improves a file's translation.

    Every helper is best effort. Transient provider failures are logged and
    produce an empty or default answer so the translation can still run.
    Terminal failures (bad key, permission, quota) raise ``TranslationError``
    because the translation itself would hit them next.
    """

    def __init__(
        self,
        endpoint: EndpointConfig,
        model: ModelSettings,
        api_key: str,
        retry: ProviderRetryConfig | None = None,
        runtime: LlmRuntimeProtocol | None = None,
        sleep: SleepCallable | None = None,
    ) -> None:
        """Initialize the assistant.

        Args:
            endpoint: Endpoint settings.
            model: Model settings used for helper prompts.
            api_key: API key for the endpoint.
            retry: Provider-level retry policy for 429/503 responses.
            runtime: Runtime adapter; defaults to the pydantic-ai runtime.
            sleep: Awaitable used between provider retries.

        Raises:
            ValueError: If the API key is empty.
        """
        if not api_key:
            raise ValueError("api_key must not be empty")
        self._settings = LlmRuntimeSettings(
            endpoint=endpoint, model=model, retry=retry or ProviderRetryConfig()
        )
        self._api_key = api_key
        self._runtime = runtime or OpenAICompatibleRuntime()
        self._sleep = sleep or asyncio.sleep

    async def generate_context(self, file_name: str) -> str:
        """Summarize the plot of the show a subtitle file belongs to.

        Args:
            file_name: Subtitle file name, usually carrying the show title.

        Returns:
            str: Two or three sentence summary, empty when unavailable.
        """
        reply = await self._complete(build_context_prompt(file_name), "context")
        return reply or ""

    async def generate_glossary(self, file_name: str, target_language: str) -> str:
        """List names and recurring terms with their target renderings.

        Returns:
            str: One ``original = rendering`` entry per row, empty when
            unavailable.
        """
        reply = await self._complete(
            build_glossary_prompt(file_name, target_language), "glossary"
        )
        return reply or ""

    async def detect_language(self, lines: list[Line]) -> LanguageDetection:
        """Detect the primary language of the source text.

        Files with no row long enough to sample, and failed or blank
        replies, fall back to English.

        Args:
            lines: Source lines.

        Returns:
            LanguageDetection: Detected language and English flag.
        """
        sample = language_sample(lines)
        if not sample:
            return _english_fallback()
        reply = await self._complete(build_language_prompt(sample), "language")
        language = parse_language_name(reply or "")
        if language is None:
            return _english_fallback()
        return LanguageDetection(
            language=language,
            is_english="english" in language.lower(),
        )

    async def _complete(self, prompt: str, purpose: str) -> str | None:
        request = LlmPromptRequest(
            runtime=self._settings,
            prompt=prompt,
            system_prompt=HELPER_SYSTEM_PROMPT,
        )
        try:
            response = await run_prompt_with_retry(
                self._runtime, request, api_key=self._api_key, sleep=self._sleep
            )
        except TranslationError as exc:
            if exc.is_terminal:
                raise
            _log.warning("%s request failed, continuing without it: %s", purpose, exc)
            return None
        return response.output_text.strip() or None


def _english_fallback() -> LanguageDetection:
    return LanguageDetection(language=DEFAULT_LANGUAGE, is_english=True, detected=False)
