"""Version shim over the two Okta client generations.

create_shim() picks the generation once per configuration load: an entry
with an API token gets the mode-aware NewOktaShim, an entry without one
keeps working through the first-generation client.

Public exports:
    OktaShim: Protocol both shims implement
    NewOktaShim: Request builder/dispatcher with authorization strategies
    LegacyOktaShim: Pass-through to LegacyOktaClient
    create_shim: Select and construct the shim for a ConfigEntry
"""

from typing import Optional

import httpx

from oktaauth.auth.cache import DEFAULT_CREDENTIAL_TTL, CredentialCache
from oktaauth.config.entry import ConfigEntry
from oktaauth.errors import ConfigurationError
from oktaauth.http import default_http_client
from oktaauth.legacy import LegacyOktaClient
from oktaauth.observability import get_logger
from oktaauth.shim.base import OktaShim
from oktaauth.shim.legacy import LegacyOktaShim
from oktaauth.shim.new import API_ROOT, NewOktaShim, resolve_path

logger = get_logger(__name__)


def create_shim(
    entry: ConfigEntry,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    credential_ttl: float = DEFAULT_CREDENTIAL_TTL,
) -> OktaShim:
    """Return the shim matching ``entry``.

    Args:
        entry: Loaded configuration.
        http_client: Client for all calls; defaults to the process-wide client.
        credential_ttl: TTL of the new shim's credential cache.

    Raises:
        ConfigurationError: If organization and base domain do not form a
            valid org URL.
    """
    http_client = http_client if http_client is not None else default_http_client()

    if entry.token:
        shim: OktaShim = NewOktaShim(
            entry.okta_configuration(),
            http_client=http_client,
            cache=CredentialCache(default_ttl=credential_ttl),
        )
        generation = "new"
    else:
        try:
            legacy_client = LegacyOktaClient(http_client, entry.organization, entry.base_domain())
        except ValueError as e:
            raise ConfigurationError(str(e), field="base_url") from e
        shim = LegacyOktaShim(legacy_client)
        generation = "legacy"

    logger.info(
        "oktaauth.shim.selected",
        generation=generation,
        organization=entry.organization,
        base_domain=entry.base_domain(),
    )
    return shim


__all__ = [
    "API_ROOT",
    "LegacyOktaShim",
    "NewOktaShim",
    "OktaShim",
    "create_shim",
    "resolve_path",
]
