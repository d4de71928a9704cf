"""Client-assertion signing and token exchange against an Okta org.

PrivateKey and JWT modes both end in the same call: a client assertion
(RFC 7523) is posted to ``{org_url}/oauth2/v1/token`` with the
client_credentials grant and the returned access token authorizes API
requests. PrivateKey mode signs the assertion itself with joserfc;
JWT mode receives it pre-built. The grant itself runs through authlib,
which attaches the assertion as the client authentication.

Token requests are retried on 429 and 5xx responses within the org's
rate-limit budget. Transport failures are not retried.
"""

import asyncio
import random
import time
import uuid
from typing import Any, Optional, Sequence

import httpx
from authlib.common.urls import add_params_to_qs
from authlib.integrations.base_client import OAuthError
from authlib.integrations.httpx_client import AsyncOAuth2Client
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import load_pem_private_key
from joserfc import jwt as jose_jwt
from joserfc.errors import JoseError
from joserfc.jwk import ECKey, RSAKey
from pydantic import Field

from oktaauth.config.client import RateLimit
from oktaauth.errors import CredentialDerivationError
from oktaauth.models.base import OktaFrozenModel
from oktaauth.observability import get_logger

logger = get_logger(__name__)

TOKEN_ENDPOINT_PATH = "/oauth2/v1/token"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
CLIENT_AUTH_METHOD = "client_assertion_jwt"
ASSERTION_LIFETIME_SECONDS = 3600
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600
RATE_LIMIT_RESET_HEADER = "X-Rate-Limit-Reset"

_EC_ALGORITHMS = {
    "secp256r1": "ES256",
    "secp384r1": "ES384",
    "secp521r1": "ES512",
}


class AccessToken(OktaFrozenModel):
    """Access token returned by the org authorization server.

    Attributes:
        access_token: Opaque or JWT access token.
        token_type: Scheme for the Authorization header, usually "Bearer".
        expires_in: Lifetime in seconds as reported by the server.
        scope: Space-separated granted scopes, if reported.
    """

    access_token: str = Field(..., min_length=1)
    token_type: str = "Bearer"
    expires_in: int = Field(default=DEFAULT_TOKEN_LIFETIME_SECONDS, ge=0)
    scope: Optional[str] = None

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"


def token_endpoint(org_url: str) -> str:
    return org_url.rstrip("/") + TOKEN_ENDPOINT_PATH


def _signing_key(private_key: str) -> tuple[Any, str]:
    """Import a PEM private key for joserfc and pick its JWS algorithm."""
    pem = private_key.encode("utf-8")
    loaded = load_pem_private_key(pem, password=None)
    if isinstance(loaded, rsa.RSAPrivateKey):
        return RSAKey.import_key(pem), "RS256"
    if isinstance(loaded, ec.EllipticCurvePrivateKey):
        alg = _EC_ALGORITHMS.get(loaded.curve.name)
        if alg is None:
            raise ValueError(f"unsupported EC curve {loaded.curve.name}")
        return ECKey.import_key(pem), alg
    raise ValueError(f"unsupported private key type {type(loaded).__name__}")


def build_client_assertion(
    private_key: str,
    client_id: str,
    org_url: str,
    *,
    private_key_id: str = "",
    now: Optional[int] = None,
) -> str:
    """Sign a client assertion for the org's token endpoint.

    Args:
        private_key: PEM-encoded RSA or EC private key.
        client_id: OAuth client id; used as issuer and subject.
        org_url: Org origin; the audience is its token endpoint.
        private_key_id: Optional ``kid`` registered with the client.
        now: Issue time override (unix seconds).

    Returns:
        Compact JWS string.

    Raises:
        CredentialDerivationError: If the key cannot be loaded or used to sign.
    """
    issued_at = int(time.time()) if now is None else now
    try:
        key, alg = _signing_key(private_key)
        header: dict[str, Any] = {"alg": alg, "typ": "JWT"}
        if private_key_id:
            header["kid"] = private_key_id
        claims = {
            "aud": token_endpoint(org_url),
            "iss": client_id,
            "sub": client_id,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
            "jti": uuid.uuid4().hex,
        }
        return jose_jwt.encode(header, claims, key, algorithms=[alg])
    except (ValueError, TypeError, UnsupportedAlgorithm, JoseError) as e:
        raise CredentialDerivationError("PrivateKey", f"cannot sign client assertion: {e}") from e


class _ClientAssertionAuth:
    """authlib client-auth method adding a signed RFC 7523 assertion to the form."""

    name = CLIENT_AUTH_METHOD

    def __init__(self, client_assertion: str) -> None:
        self._client_assertion = client_assertion

    def __call__(
        self, auth: Any, method: str, uri: str, headers: Any, body: Any
    ) -> tuple[str, Any, str]:
        body = add_params_to_qs(
            body or "",
            [
                ("client_assertion_type", CLIENT_ASSERTION_TYPE),
                ("client_assertion", self._client_assertion),
            ],
        )
        return uri, headers, body


class _SharedClientTransport(httpx.AsyncBaseTransport):
    """Sends authlib's token requests through the caller's pooled client."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http_client = http_client

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._http_client.send(request)


class _TokenEndpointRejected(Exception):
    """Raised from the token-response hook for any non-200 response."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"token endpoint returned {response.status_code}")
        self.response = response


def _reject_error_status(response: httpx.Response) -> httpx.Response:
    if response.status_code != 200:
        raise _TokenEndpointRejected(response)
    return response


def _parse_token_response(mode: str, raw_token: Any) -> AccessToken:
    """Convert authlib's token dict into an AccessToken."""
    try:
        return AccessToken(
            access_token=raw_token["access_token"],
            token_type=raw_token.get("token_type", "Bearer"),
            expires_in=int(raw_token.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS)),
            scope=raw_token.get("scope"),
        )
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise CredentialDerivationError(
            mode, f"malformed token response: {e}", status_code=200
        ) from e


def _rejection_reason(response: httpx.Response) -> str:
    reason = f"token endpoint returned {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        reason += f": {body['error']}"
        if body.get("error_description"):
            reason += f" ({body['error_description']})"
    return reason


def _backoff_delay(response: httpx.Response, attempt: int, max_backoff: float) -> float:
    """Seconds to wait before retrying a rate-limited or failed token request.

    Prefers the reset epoch Okta sends with 429s; falls back to exponential
    backoff with a little jitter. Never exceeds ``max_backoff``.
    """
    reset = response.headers.get(RATE_LIMIT_RESET_HEADER)
    delay: float
    if reset is not None and reset.isdigit():
        delay = max(int(reset) - time.time(), 0.0) + 1.0
    else:
        delay = float(2**attempt)
        delay += random.uniform(0, delay * 0.1)  # nosec B311
    return min(delay, max_backoff)


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


async def _fetch_token(
    http_client: httpx.AsyncClient, url: str, client_assertion: str, scopes: Sequence[str]
) -> Any:
    async with AsyncOAuth2Client(
        scope=" ".join(scopes) or None,
        token_endpoint_auth_method=CLIENT_AUTH_METHOD,
        transport=_SharedClientTransport(http_client),
        timeout=http_client.timeout,
    ) as oauth_client:
        oauth_client.register_client_auth_method(_ClientAssertionAuth(client_assertion))
        oauth_client.register_compliance_hook("access_token_response", _reject_error_status)
        return await oauth_client.fetch_token(url=url, grant_type="client_credentials")


async def exchange_client_assertion(
    http_client: httpx.AsyncClient,
    org_url: str,
    client_assertion: str,
    scopes: Sequence[str],
    rate_limit: RateLimit,
    *,
    mode: str,
) -> AccessToken:
    """Exchange a client assertion for an access token.

    The request is built and parsed by authlib's AsyncOAuth2Client and
    sent through ``http_client``.

    Args:
        http_client: Client used for the token request.
        org_url: Org origin.
        client_assertion: Signed assertion (compact JWS).
        scopes: Scopes to request.
        rate_limit: Retry budget for 429/5xx responses.
        mode: Authorization mode name, used in errors and logs.

    Returns:
        AccessToken issued by the org.

    Raises:
        CredentialDerivationError: On transport failure, an error response,
            exhausted retries or a malformed token response.
    """
    url = token_endpoint(org_url)

    attempt = 0
    while True:
        try:
            raw_token = await _fetch_token(http_client, url, client_assertion, scopes)
        except _TokenEndpointRejected as e:
            response = e.response
            if not _is_retryable(response.status_code) or attempt >= rate_limit.max_retries:
                raise CredentialDerivationError(
                    mode, _rejection_reason(response), status_code=response.status_code
                ) from None
        except httpx.HTTPError as e:
            raise CredentialDerivationError(mode, f"token request failed: {e}") from e
        except OAuthError as e:
            raise CredentialDerivationError(
                mode, f"token endpoint returned an error: {e.error}", status_code=200
            ) from e
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise CredentialDerivationError(
                mode, f"malformed token response: {e}", status_code=200
            ) from e
        else:
            break

        delay = _backoff_delay(response, attempt, rate_limit.max_backoff)
        logger.warning(
            "oktaauth.auth.token_retry",
            mode=mode,
            status_code=response.status_code,
            attempt=attempt + 1,
            max_retries=rate_limit.max_retries,
            delay_seconds=round(delay, 3),
        )
        await asyncio.sleep(delay)
        attempt += 1

    token = _parse_token_response(mode, raw_token)
    logger.info(
        "oktaauth.auth.token_exchanged",
        mode=mode,
        endpoint=url,
        expires_in=token.expires_in,
        attempts=attempt + 1,
    )
    return token
