"""Authorization strategies for new-generation requests.

Each authorization mode is its own frozen dataclass carrying only the
fields that mode needs. select_authorization() maps a client
configuration onto one of them and rejects anything else.

- SSWSAuthorization: ``Authorization: SSWS <api token>``
- BearerAuthorization: ``Authorization: Bearer <token>``
- PrivateKeyAuthorization: signs a client assertion, exchanges it for an
  access token (cached), sends ``<token_type> <access_token>``
- JWTAuthorization: exchanges a pre-built client assertion the same way

Every strategy sets exactly one Authorization header on the request it is
given, replacing any previous value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Union

import httpx

from oktaauth.auth.cache import CredentialCache, cache_key
from oktaauth.auth.exchange import AccessToken, build_client_assertion, exchange_client_assertion
from oktaauth.config.client import AuthorizationMode, OktaConfiguration, RateLimit
from oktaauth.errors import UnknownAuthorizationModeError
from oktaauth.observability import get_logger

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "Authorization"

_Deriver = Callable[[], Awaitable[AccessToken]]


@dataclass(frozen=True)
class SSWSAuthorization:
    """Static API token sent with Okta's SSWS scheme."""

    token: str = field(repr=False)

    async def authorize(self, method: str, url: str, request: httpx.Request) -> None:
        request.headers[AUTHORIZATION_HEADER] = f"SSWS {self.token}"


@dataclass(frozen=True)
class BearerAuthorization:
    """Pre-provisioned bearer token."""

    token: str = field(repr=False)

    async def authorize(self, method: str, url: str, request: httpx.Request) -> None:
        request.headers[AUTHORIZATION_HEADER] = f"Bearer {self.token}"


async def _cached_access_token(
    cache: CredentialCache[AccessToken],
    key: str,
    mode: str,
    derive: _Deriver,
) -> AccessToken:
    token = cache.get(key)
    if token is not None:
        logger.debug("oktaauth.auth.cache_hit", mode=mode)
        return token
    token = await derive()
    # never keep a token past its own lifetime
    cache.set(key, token, ttl=min(cache.default_ttl, float(token.expires_in)))
    return token


@dataclass(frozen=True)
class PrivateKeyAuthorization:
    """Service-app authorization with a private key registered in Okta.

    Attributes:
        private_key: PEM-encoded RSA or EC private key.
        private_key_id: ``kid`` of the key, if registered with one.
        client_id: OAuth client id of the service app.
        org_url: Org origin.
        scopes: Scopes requested for the access token.
        rate_limit: Retry budget for the token endpoint.
        http_client: Client used for the token exchange.
        cache: Shared cache of derived access tokens.
    """

    private_key: str = field(repr=False)
    private_key_id: str
    client_id: str
    org_url: str
    scopes: tuple[str, ...]
    rate_limit: RateLimit
    http_client: httpx.AsyncClient = field(repr=False, compare=False)
    cache: CredentialCache[AccessToken] = field(repr=False, compare=False)

    def credential_key(self) -> str:
        return cache_key(
            AuthorizationMode.PRIVATE_KEY.value,
            self.org_url,
            self.client_id,
            self.private_key_id,
            self.scopes,
        )

    async def _derive(self) -> AccessToken:
        assertion = build_client_assertion(
            self.private_key,
            self.client_id,
            self.org_url,
            private_key_id=self.private_key_id,
        )
        return await exchange_client_assertion(
            self.http_client,
            self.org_url,
            assertion,
            self.scopes,
            self.rate_limit,
            mode=AuthorizationMode.PRIVATE_KEY.value,
        )

    async def authorize(self, method: str, url: str, request: httpx.Request) -> None:
        token = await _cached_access_token(
            self.cache, self.credential_key(), AuthorizationMode.PRIVATE_KEY.value, self._derive
        )
        request.headers[AUTHORIZATION_HEADER] = token.authorization_header


@dataclass(frozen=True)
class JWTAuthorization:
    """Authorization with a client assertion signed elsewhere."""

    client_assertion: str = field(repr=False)
    org_url: str
    scopes: tuple[str, ...]
    rate_limit: RateLimit
    http_client: httpx.AsyncClient = field(repr=False, compare=False)
    cache: CredentialCache[AccessToken] = field(repr=False, compare=False)

    def credential_key(self) -> str:
        return cache_key(
            AuthorizationMode.JWT.value, self.org_url, self.client_assertion, self.scopes
        )

    async def _derive(self) -> AccessToken:
        return await exchange_client_assertion(
            self.http_client,
            self.org_url,
            self.client_assertion,
            self.scopes,
            self.rate_limit,
            mode=AuthorizationMode.JWT.value,
        )

    async def authorize(self, method: str, url: str, request: httpx.Request) -> None:
        token = await _cached_access_token(
            self.cache, self.credential_key(), AuthorizationMode.JWT.value, self._derive
        )
        request.headers[AUTHORIZATION_HEADER] = token.authorization_header


Authorization = Union[
    SSWSAuthorization, BearerAuthorization, PrivateKeyAuthorization, JWTAuthorization
]


def select_authorization(
    configuration: OktaConfiguration,
    cache: CredentialCache[AccessToken],
    http_client: httpx.AsyncClient,
) -> Authorization:
    """Build the strategy for the configuration's authorization mode.

    Raises:
        UnknownAuthorizationModeError: If the mode is not one of SSWS,
            Bearer, PrivateKey or JWT.
    """
    settings = configuration.client
    mode = settings.authorization_mode
    if mode == AuthorizationMode.SSWS.value:
        return SSWSAuthorization(token=settings.token)
    if mode == AuthorizationMode.BEARER.value:
        return BearerAuthorization(token=settings.token)
    if mode == AuthorizationMode.PRIVATE_KEY.value:
        return PrivateKeyAuthorization(
            private_key=settings.private_key,
            private_key_id=settings.private_key_id,
            client_id=settings.client_id,
            org_url=settings.org_url,
            scopes=settings.scopes,
            rate_limit=settings.rate_limit,
            http_client=http_client,
            cache=cache,
        )
    if mode == AuthorizationMode.JWT.value:
        return JWTAuthorization(
            client_assertion=settings.client_assertion,
            org_url=settings.org_url,
            scopes=settings.scopes,
            rate_limit=settings.rate_limit,
            http_client=http_client,
            cache=cache,
        )
    raise UnknownAuthorizationModeError(mode)
