"""Authorization layer for Okta API requests.

Public exports:
    CredentialCache: Thread-safe TTL cache of derived access tokens
    AccessToken: Token issued by the org authorization server
    Authorization: Union of the four authorization strategies
    SSWSAuthorization, BearerAuthorization, PrivateKeyAuthorization,
    JWTAuthorization: The strategies themselves
    select_authorization: Strategy factory keyed on the authorization mode
"""

from oktaauth.auth.cache import DEFAULT_CREDENTIAL_TTL, CredentialCache, cache_key
from oktaauth.auth.exchange import AccessToken, build_client_assertion, exchange_client_assertion
from oktaauth.auth.strategies import (
    Authorization,
    BearerAuthorization,
    JWTAuthorization,
    PrivateKeyAuthorization,
    SSWSAuthorization,
    select_authorization,
)

__all__ = [
    "AccessToken",
    "Authorization",
    "BearerAuthorization",
    "CredentialCache",
    "DEFAULT_CREDENTIAL_TTL",
    "JWTAuthorization",
    "PrivateKeyAuthorization",
    "SSWSAuthorization",
    "build_client_assertion",
    "cache_key",
    "exchange_client_assertion",
    "select_authorization",
]
