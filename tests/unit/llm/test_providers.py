"""Unit tests for provider detection."""

from __future__ import annotations

import pytest

from dualsub_llm.providers import detect_provider, normalize_base_url


@pytest.mark.unit
@pytest.mark.parametrize(
    ("base_url", "name", "is_openrouter", "is_local"),
    [
        ("https://openrouter.ai/api/v1", "OpenRouter", True, False),
        ("https://api.openai.com/v1/", "OpenAI", False, False),
        ("http://localhost:1234/v1", "Local", False, True),
        ("http://192.168.1.20:11434/v1", "Local", False, True),
        ("https://llm.example.com/v1", "Generic OpenAI-compatible", False, False),
    ],
)
def test_detect_provider(
    base_url: str, name: str, is_openrouter: bool, is_local: bool
) -> None:
    capabilities = detect_provider(base_url)

    assert capabilities.name == name
    assert capabilities.is_openrouter is is_openrouter
    assert capabilities.is_local is is_local


@pytest.mark.unit
def test_normalize_base_url() -> None:
    assert normalize_base_url("API.OpenAI.com/v1/") == "https://api.openai.com/v1"
    assert normalize_base_url("http://Localhost:8080/") == "http://localhost:8080"
