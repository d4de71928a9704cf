"""Client configuration consumed by the new-generation shim.

OktaConfiguration is the richer settings object: besides the org URL it
carries the authorization mode and whatever signing material that mode
needs. Configurations derived from a stored ConfigEntry always use SSWS;
the other modes are available to callers that build one directly.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import httpx
from pydantic import Field, field_validator

from oktaauth.models.base import OktaFrozenModel

# Rate-limit defaults of the Okta management SDK
DEFAULT_MAX_RETRIES = 2
DEFAULT_MAX_BACKOFF = 30.0


class AuthorizationMode(str, Enum):
    """Authorization modes understood by the request builder."""

    SSWS = "SSWS"
    BEARER = "Bearer"
    PRIVATE_KEY = "PrivateKey"
    JWT = "JWT"


class RateLimit(OktaFrozenModel):
    """Retry budget for token-endpoint calls.

    Attributes:
        max_retries: Retries after the first attempt on 429/5xx responses.
        max_backoff: Upper bound in seconds for a single backoff sleep.
    """

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    max_backoff: float = Field(default=DEFAULT_MAX_BACKOFF, ge=0)


class ClientSettings(OktaFrozenModel):
    """Connection and authorization settings for one Okta org.

    ``authorization_mode`` is a plain string so that records written by
    newer releases still load; unknown values are rejected when a request
    is built, not here.
    """

    org_url: str
    authorization_mode: str = AuthorizationMode.SSWS.value
    token: str = ""
    private_key: str = ""
    private_key_id: str = ""
    client_id: str = ""
    scopes: tuple[str, ...] = ()
    client_assertion: str = ""
    rate_limit: RateLimit = Field(default_factory=RateLimit)

    @field_validator("org_url")
    @classmethod
    def validate_org_url(cls, v: str) -> str:
        """Require an absolute https URL and drop any trailing slash."""
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid org URL {v!r}: {e}") from e
        if url.scheme != "https" or not url.host:
            raise ValueError(f"org URL must be an absolute https URL, got {v!r}")
        return v.rstrip("/")


class OktaConfiguration(OktaFrozenModel):
    """Top-level configuration handed to NewOktaShim."""

    client: ClientSettings

    @property
    def org_url(self) -> str:
        return self.client.org_url


def new_configuration(org_url: str, token: str = "", **settings: Any) -> OktaConfiguration:
    """Build an OktaConfiguration for ``org_url``.

    Args:
        org_url: Origin of the Okta org, e.g. https://acme.okta.com.
        token: API token for SSWS/Bearer modes.
        **settings: Any other ClientSettings field.

    Raises:
        pydantic.ValidationError: If the URL or a setting is invalid.
    """
    return OktaConfiguration(client=ClientSettings(org_url=org_url, token=token, **settings))
