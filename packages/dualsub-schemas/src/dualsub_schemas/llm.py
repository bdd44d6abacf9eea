"""Schemas for LLM runtime operations."""

from __future__ import annotations

from pydantic import Field

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.config import EndpointConfig, ModelSettings, ProviderRetryConfig


class LlmRuntimeSettings(BaseSchema):
    """Runtime settings for a single LLM invocation."""

    endpoint: EndpointConfig = Field(..., description="Endpoint settings")
    model: ModelSettings = Field(..., description="Model settings")
    retry: ProviderRetryConfig = Field(
        default_factory=ProviderRetryConfig, description="Provider retry policy"
    )


class LlmPromptRequest(BaseSchema):
    """Prompt request for an LLM runtime call."""

    runtime: LlmRuntimeSettings = Field(..., description="Runtime settings")
    prompt: str = Field(..., min_length=1, description="Prompt text")
    system_prompt: str | None = Field(None, description="Optional system prompt")


class LlmPromptResponse(BaseSchema):
    """Response payload from an LLM runtime call."""

    model_id: str = Field(..., min_length=1, description="Model identifier")
    output_text: str = Field("", description="Model output")


class LanguageDetection(BaseSchema):
    """Primary language detected in a subtitle file's source text."""

    language: str = Field(..., min_length=1, description="Detected language name")
    is_english: bool = Field(..., description="Whether the source reads as English")
    detected: bool = Field(
        True, description="False when detection fell back to the English default"
    )
