"""Configuration schemas for dualsub translation runs."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator

from dualsub_schemas.base import BaseSchema
from dualsub_schemas.primitives import LogSinkType


class LogSinkConfig(BaseSchema):
    """Configuration for a single log sink."""

    type: LogSinkType = Field(..., description="Log sink type (console|file|noop)")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> LogSinkType:
        if isinstance(value, LogSinkType):
            return value
        if isinstance(value, str):
            return LogSinkType(value)
        return value  # type: ignore[return-value]


class LoggingConfig(BaseSchema):
    """Logging configuration for translation runs and CLI commands."""

    sinks: list[LogSinkConfig] = Field(
        default_factory=lambda: [LogSinkConfig(type=LogSinkType.CONSOLE)],
        min_length=1,
        description="Log sinks to enable",
    )

    @model_validator(mode="after")
    def validate_sink_types(self) -> LoggingConfig:
        """Ensure log sink types are unique.

        Returns:
            LoggingConfig: Validated logging configuration.

        Raises:
            ValueError: If sink types are duplicated.
        """
        sink_types = [sink.type for sink in self.sinks]
        if len(set(sink_types)) != len(sink_types):
            raise ValueError("log sinks must not contain duplicates")
        return self


class ChunkingConfig(BaseSchema):
    """How the line sequence is split into translation work units."""

    chunk_size: int = Field(40, ge=1, description="Maximum lines per chunk")
    overlap_size: int = Field(
        5, ge=0, description="Preceding lines sent as read-only context"
    )


class ConcurrencyConfig(BaseSchema):
    """Worker pool bounds."""

    max_workers: int = Field(8, ge=1, description="Concurrent chunk workers")


class RetryConfig(BaseSchema):
    """Per-chunk retry policy applied around translator calls."""

    max_attempts: int = Field(3, ge=1, description="Attempts per chunk")
    backoff_s: float = Field(1.0, ge=0, description="Initial backoff in seconds")
    max_backoff_s: float = Field(
        30.0, ge=0, description="Maximum backoff delay in seconds"
    )

    def delay_for(self, attempt: int) -> float:
        """Return the exponential backoff delay after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed.

        Returns:
            float: Seconds to wait before the next attempt.
        """
        exponent = max(attempt - 1, 0)
        return min(self.max_backoff_s, self.backoff_s * (2**exponent))


class VerificationConfig(BaseSchema):
    """Final sweep over lines left unresolved by the worker pool."""

    batch_size: int = Field(50, ge=1, description="Lines per verification group")
    max_rounds: int = Field(2, ge=0, description="Maximum verification rounds")
    group_delay_s: float = Field(
        1.0, ge=0, description="Pause between sequential groups"
    )


class TimingConfig(BaseSchema):
    """Duration budgeting and timing optimization constants."""

    hard_cap_ms: int = Field(6000, ge=1, description="Budget ceiling per line")
    min_gap_ms: int = Field(50, ge=0, description="Gap kept before the next line")
    min_duration_ms: int = Field(1000, ge=1, description="Minimum display time")
    max_duration_ms: int = Field(6000, ge=1, description="Maximum display time")
    chars_per_second: float = Field(20.0, gt=0, description="Reading speed")
    fallback_duration_ms: int = Field(
        10, ge=1, description="Duration used when neighbours leave no room"
    )
    optimize: bool = Field(True, description="Optimize timings on export")

    @model_validator(mode="after")
    def _validate_bounds(self) -> TimingConfig:
        if self.min_duration_ms > self.max_duration_ms:
            raise ValueError("min_duration_ms cannot exceed max_duration_ms")
        return self


class EndpointConfig(BaseSchema):
    """OpenAI-compatible endpoint used for translation."""

    provider_name: str = Field("openai", min_length=1, description="Provider label")
    base_url: str = Field(
        "https://api.openai.com/v1", min_length=1, description="Endpoint base URL"
    )
    api_key_env: str = Field(
        "DUALSUB_API_KEY",
        min_length=1,
        description="Environment variable holding the API key",
    )
    timeout_s: float = Field(180.0, gt=0, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("base_url must be an http(s) URL")
        return value


class ProviderRetryConfig(BaseSchema):
    """Retries performed inside the translator for rate limits and overload."""

    max_retries: int = Field(3, ge=0, description="Provider-level retries")
    backoff_s: float = Field(2.0, ge=0, description="Initial backoff in seconds")


class ModelSettings(BaseSchema):
    """Model and sampling settings for translation requests."""

    model_id: str = Field("gpt-4o-mini", min_length=1, description="Model identifier")
    temperature: float = Field(0.3, ge=0, le=2, description="Sampling temperature")
    top_p: float = Field(0.95, ge=0, le=1, description="Top-p sampling")
    max_output_tokens: int = Field(8192, ge=1, description="Maximum output tokens")
    max_line_chars: int = Field(
        90, ge=1, description="Visible characters before a condense retry"
    )


class TranslationConfig(BaseSchema):
    """What to translate into and with which hints."""

    target_language: str = Field(
        "Vietnamese", min_length=1, description="Target language name"
    )
    context: str | None = Field(None, description="Plot or setting summary")
    glossary: str | None = Field(None, description="Names and terms to keep fixed")


class RunConfig(BaseSchema):
    """Complete configuration for one translation run."""

    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    provider_retry: ProviderRetryConfig = Field(default_factory=ProviderRetryConfig)
    model: ModelSettings = Field(default_factory=ModelSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
