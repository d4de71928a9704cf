"""Okta configuration: the stored record, its storage and the client settings.

Public exports:
    ConfigEntry: Persisted configuration record
    OktaConfiguration: Client settings consumed by the new-generation shim
    read_config, write_config, load_config, config_exists: Config operations
    InMemoryStorage, SQLiteStorage: Storage backends
"""

from oktaauth.config.client import (
    AuthorizationMode,
    ClientSettings,
    OktaConfiguration,
    RateLimit,
    new_configuration,
)
from oktaauth.config.entry import ConfigEntry, TokenParams, resolve_base_domain
from oktaauth.config.path import (
    MFA_BYPASS_WARNING,
    ConfigResponse,
    config_exists,
    load_config,
    read_config,
    write_config,
)
from oktaauth.config.storage import InMemoryStorage, SQLiteStorage, Storage, StorageEntry

__all__ = [
    "AuthorizationMode",
    "ClientSettings",
    "ConfigEntry",
    "ConfigResponse",
    "InMemoryStorage",
    "MFA_BYPASS_WARNING",
    "OktaConfiguration",
    "RateLimit",
    "SQLiteStorage",
    "Storage",
    "StorageEntry",
    "TokenParams",
    "config_exists",
    "load_config",
    "new_configuration",
    "read_config",
    "resolve_base_domain",
    "write_config",
]
