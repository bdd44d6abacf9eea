"""LLM translator adapters for dualsub."""

from dualsub_llm.assistant import SubtitleAssistant
from dualsub_llm.errors import classify_provider_error, kind_for_status
from dualsub_llm.openai_runtime import OpenAICompatibleRuntime
from dualsub_llm.providers import ProviderCapabilities, detect_provider
from dualsub_llm.translator import LlmTranslator

__all__ = [
    "LlmTranslator",
    "OpenAICompatibleRuntime",
    "ProviderCapabilities",
    "SubtitleAssistant",
    "classify_provider_error",
    "detect_provider",
    "kind_for_status",
]
