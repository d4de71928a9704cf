"""Shared pydantic bases for oktaauth."""

from oktaauth.models.base import OktaBaseModel, OktaFrozenModel

__all__ = ["OktaBaseModel", "OktaFrozenModel"]
