"""Protocol for the LLM runtime used by translators and helper prompts."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from dualsub_schemas.llm import LlmPromptRequest, LlmPromptResponse


@runtime_checkable
class LlmRuntimeProtocol(Protocol):
    """Single-prompt text completion against an OpenAI-compatible endpoint.

    Implementations must let provider exceptions propagate unchanged.
    Callers classify them (status code, quota body, timeout) into
    ``TranslationErrorKind`` values, so wrapping them here would hide
    whether a failure is terminal.
    """

    async def run_prompt(
        self, request: LlmPromptRequest, *, api_key: str
    ) -> LlmPromptResponse:
        """Send one prompt and return the model's raw text reply.

        Args:
            request: Prompt, system instructions and endpoint/model settings.
            api_key: Credential for the endpoint.

        Returns:
            LlmPromptResponse: Reply text and the model that produced it.
        """
        raise NotImplementedError
