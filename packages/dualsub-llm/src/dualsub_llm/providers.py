"""Provider detection from endpoint base URLs."""

from __future__ import annotations

import ipaddress
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field


class ProviderCapabilities(BaseModel):
    """What the runtime needs to know about an OpenAI-compatible provider.

    Attributes:
        name: Human-readable provider name.
        is_openrouter: Whether the provider is OpenRouter.
        is_local: Whether the endpoint is self-hosted on a private address.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(description="Human-readable provider name")
    is_openrouter: bool = Field(description="Whether the provider is OpenRouter")
    is_local: bool = Field(False, description="Whether the endpoint is local")


OPENROUTER_CAPABILITIES = ProviderCapabilities(name="OpenRouter", is_openrouter=True)

OPENAI_CAPABILITIES = ProviderCapabilities(name="OpenAI", is_openrouter=False)

# LM Studio, Ollama and other self-hosted servers
LOCAL_CAPABILITIES = ProviderCapabilities(
    name="Local", is_openrouter=False, is_local=True
)

GENERIC_CAPABILITIES = ProviderCapabilities(
    name="Generic OpenAI-compatible", is_openrouter=False
)


def normalize_base_url(base_url: str) -> str:
    """Normalize a base URL for consistent comparison.

    Args:
        base_url: The base URL to normalize.

    Returns:
        Normalized base URL string.
    """
    base_url_lower = base_url.lower()
    if not base_url_lower.startswith(("http://", "https://")):
        base_url = "https://" + base_url_lower
    else:
        base_url = base_url_lower

    parsed = urlparse(base_url)
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}".rstrip("/")


def _is_private_host(hostname: str) -> bool:
    if hostname in ("localhost", "0.0.0.0", "::1"):
        return True
    if hostname.endswith((".local", ".localhost")):
        return True
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback


def detect_provider(base_url: str) -> ProviderCapabilities:
    """Detect provider capabilities from base URL.

    Args:
        base_url: The API base URL.

    Returns:
        ProviderCapabilities for the detected provider.
    """
    normalized = normalize_base_url(base_url)
    if "openrouter.ai" in normalized:
        return OPENROUTER_CAPABILITIES
    if "api.openai.com" in normalized:
        return OPENAI_CAPABILITIES
    hostname = urlparse(normalized).hostname or ""
    if _is_private_host(hostname):
        return LOCAL_CAPABILITIES
    return GENERIC_CAPABILITIES
