"""Base schema configuration for dualsub Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with strict validation defaults.

    Note: extra="ignore" lets config files and provider payloads carry fields
    a given release does not know about. Required fields are still validated,
    and assignments are re-validated so in-place updates (translated text,
    optimized end times) cannot break model invariants.
    """

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
        validate_default=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        strict=True,
    )


class FrozenSchema(BaseSchema):
    """Immutable variant for values handed between concurrent workers."""

    model_config = ConfigDict(frozen=True)
