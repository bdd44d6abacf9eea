"""OpenAI-compatible runtime adapter powered by pydantic-ai."""

from __future__ import annotations

from typing import cast

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel, OpenAIChatModelSettings
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.providers.openrouter import OpenRouterProvider
from pydantic_ai.settings import ModelSettings

from dualsub_core.ports.llm import LlmRuntimeProtocol
from dualsub_llm.providers import detect_provider
from dualsub_schemas.llm import LlmPromptRequest, LlmPromptResponse

DEFAULT_INSTRUCTIONS = "You are a professional subtitle translator."


class OpenAICompatibleRuntime(LlmRuntimeProtocol):
    """OpenAI-compatible runtime adapter for BYOK endpoints."""

    async def run_prompt(
        self, request: LlmPromptRequest, *, api_key: str
    ) -> LlmPromptResponse:
        """Execute a prompt using the OpenAI-compatible endpoint.

        Provider errors propagate unchanged so callers can classify them.

        Returns:
            LlmPromptResponse: Model output payload.
        """
        endpoint = request.runtime.endpoint
        settings = request.runtime.model
        capabilities = detect_provider(endpoint.base_url)

        if capabilities.is_openrouter:
            model = OpenAIChatModel(
                settings.model_id,
                provider=OpenRouterProvider(api_key=api_key),
            )
        else:
            model = OpenAIChatModel(
                settings.model_id,
                provider=OpenAIProvider(base_url=endpoint.base_url, api_key=api_key),
            )

        model_settings: OpenAIChatModelSettings = {
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "max_tokens": settings.max_output_tokens,
            "timeout": endpoint.timeout_s,
        }
        agent = Agent(model, instructions=request.system_prompt or DEFAULT_INSTRUCTIONS)
        result = await agent.run(
            request.prompt,
            model_settings=cast(ModelSettings, model_settings),
        )
        return LlmPromptResponse(
            model_id=settings.model_id,
            output_text=str(result.output),
        )
