"""Okta authentication core.

Builds authorized requests against the Okta API for both client
generations behind a single shim interface.

Public exports:
    ConfigEntry: Persisted configuration record
    OktaShim: Protocol implemented by both client generations
    create_shim: Select the shim for a configuration
    CredentialCache: Expiring store for derived access tokens
"""

__version__ = "0.1.0"

from oktaauth.auth.cache import CredentialCache
from oktaauth.config.entry import ConfigEntry
from oktaauth.shim import LegacyOktaShim, NewOktaShim, OktaShim, create_shim

__all__ = [
    "ConfigEntry",
    "CredentialCache",
    "LegacyOktaShim",
    "NewOktaShim",
    "OktaShim",
    "__version__",
    "create_shim",
]
