"""Base Pydantic model configuration for oktaauth models.

Models inherit from OktaBaseModel for consistent behavior:
- Strict validation (extra="forbid") to catch typos in stored records
- Flexible field naming (populate_by_name=True) for alias support
- Validation of defaults and of assignments on mutable models
"""

from pydantic import BaseModel, ConfigDict


class OktaBaseModel(BaseModel):
    """Base model for oktaauth records.

    Unlike value objects, configuration records are mutated by the
    configuration-write path, so models are not frozen; assignments are
    validated instead.

    Example:
        >>> class Example(OktaBaseModel):
        ...     name: str
        >>> Example(name="acme").name
        'acme'
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        validate_default=True,
        validate_assignment=True,
    )


class OktaFrozenModel(OktaBaseModel):
    """Immutable variant for values shared across tasks (tokens, settings)."""

    model_config = ConfigDict(frozen=True)
