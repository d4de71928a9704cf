"""Persisted Okta configuration record.

ConfigEntry is the JSON document stored under the ``config`` key. It names
the organization, the optional API token, how to reach the org (explicit
base domain or the deprecated production flag) and the parameters of the
tokens issued after a successful login.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ConfigDict, Field, ValidationError

from oktaauth.config.client import OktaConfiguration, new_configuration
from oktaauth.errors import ConfigurationError
from oktaauth.models.base import OktaBaseModel

DEFAULT_BASE_DOMAIN = "okta.com"
PREVIEW_BASE_DOMAIN = "oktapreview.com"


class TokenParams(OktaBaseModel):
    """Parameters applied to tokens issued by this auth method.

    Durations are whole seconds; 0 means "use the system default".
    """

    token_ttl: int = Field(default=0, ge=0)
    token_max_ttl: int = Field(default=0, ge=0)
    token_explicit_max_ttl: int = Field(default=0, ge=0)
    token_period: int = Field(default=0, ge=0)
    token_policies: list[str] = Field(default_factory=list)
    token_bound_cidrs: list[str] = Field(default_factory=list)
    token_no_default_policy: bool = False
    token_num_uses: int = Field(default=0, ge=0)
    token_type: str = "default"

    def populate_token_data(self, data: dict[str, Any]) -> None:
        """Copy the token parameters into a read-response ``data`` dict."""
        data.update(self.model_dump(include=set(TokenParams.model_fields)))


class ConfigEntry(TokenParams):
    """Okta configuration as stored.

    ``is_production`` is only meaningful when ``base_url`` is empty; the
    write path clears it whenever a base URL is set. ``ttl`` and
    ``max_ttl`` are deprecated in favour of ``token_ttl`` and
    ``token_max_ttl``.
    """

    # records written by newer releases may carry fields unknown here
    model_config = ConfigDict(extra="ignore")

    organization: str = ""
    token: str = ""
    base_url: str = ""
    is_production: Optional[bool] = None
    ttl: int = Field(default=0, ge=0)
    max_ttl: int = Field(default=0, ge=0)
    bypass_okta_mfa: bool = False

    def upgrade_deprecated_ttls(self) -> None:
        """Back-fill token_ttl/token_max_ttl from the deprecated fields."""
        if self.token_ttl == 0 and self.ttl > 0:
            self.token_ttl = self.ttl
        if self.token_max_ttl == 0 and self.max_ttl > 0:
            self.token_max_ttl = self.max_ttl

    def base_domain(self) -> str:
        return resolve_base_domain(self.base_url, self.is_production)

    @property
    def org_url(self) -> str:
        """Origin of the org, e.g. ``https://acme.okta.com``."""
        return f"https://{self.organization}.{self.base_domain()}"

    def okta_configuration(self) -> OktaConfiguration:
        """Build the SSWS client configuration for this entry.

        Raises:
            ConfigurationError: If organization and base domain do not form
                a valid https origin.
        """
        try:
            return new_configuration(self.org_url, token=self.token)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid Okta org URL {self.org_url!r}", field="base_url"
            ) from e

    def to_storage_json(self) -> str:
        # is_production is omitted entirely when unset
        return self.model_dump_json(exclude_none=True)


def resolve_base_domain(base_url: str, is_production: Optional[bool]) -> str:
    """Pick the domain suffix of the org URL.

    An explicit base URL wins; otherwise an explicit ``False`` production
    flag selects the preview domain and anything else the production one.

    Example:
        >>> resolve_base_domain("", False)
        'oktapreview.com'
        >>> resolve_base_domain("example.com", False)
        'example.com'
    """
    if base_url:
        return base_url
    if is_production is False:
        return PREVIEW_BASE_DOMAIN
    return DEFAULT_BASE_DOMAIN
