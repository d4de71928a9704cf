"""New-generation shim: mode-aware request builder and dispatcher.

Requests are built directly with httpx. The configured authorization
strategy adds the Authorization header; derived credentials for the
PrivateKey and JWT modes live in the shim's CredentialCache, which is
shared by every request the shim builds.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from oktaauth.auth.cache import CredentialCache
from oktaauth.auth.exchange import AccessToken
from oktaauth.auth.strategies import select_authorization
from oktaauth.config.client import OktaConfiguration
from oktaauth.errors import OktaTransportError
from oktaauth.http import decode_json_response, default_http_client, encode_json_body
from oktaauth.observability import get_logger

logger = get_logger(__name__)

API_ROOT = "/api/v1/"

# Authorization is always computed for POST; the first-generation code
# path only ever issued POST-signed requests.
SIGNING_METHOD = "POST"


def resolve_path(path: str) -> str:
    """Prefix relative paths with the API root.

    Example:
        >>> resolve_path("users")
        '/api/v1/users'
        >>> resolve_path("/oauth2/v1/keys")
        '/oauth2/v1/keys'
    """
    if not path.startswith("/"):
        return API_ROOT + path
    return path


class NewOktaShim:
    """Shim over the mode-aware client configuration.

    Example:
        >>> shim = NewOktaShim(new_configuration("https://acme.okta.com", token="00abc"))
        >>> request = await shim.new_request("GET", "users/me")
        >>> me = await shim.dispatch(request)
    """

    def __init__(
        self,
        configuration: OktaConfiguration,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        cache: Optional[CredentialCache[AccessToken]] = None,
    ) -> None:
        """Bind the shim to one org.

        Args:
            configuration: Client configuration (org URL, mode, signing material).
            http_client: Client used for API and token calls; defaults to the
                process-wide client.
            cache: Cache for derived credentials; a fresh one by default.
        """
        self._configuration = configuration
        self._http_client = http_client if http_client is not None else default_http_client()
        self._cache: CredentialCache[AccessToken] = cache if cache is not None else CredentialCache()

    @property
    def cache(self) -> CredentialCache[AccessToken]:
        return self._cache

    def client(self) -> tuple[Optional[httpx.AsyncClient], Optional[OktaConfiguration]]:
        return self._http_client, self._configuration

    async def new_request(self, method: str, path: str, body: Any = None) -> httpx.Request:
        """Build a request and authorize it for the configured mode.

        Raises:
            RequestEncodingError: If ``body`` cannot be serialized.
            UnknownAuthorizationModeError: If the configured mode is unsupported.
            CredentialDerivationError: If an access token cannot be obtained.
        """
        content = encode_json_body(body)
        url = self._configuration.org_url + resolve_path(path)
        request = httpx.Request(method, url, content=content)

        authorization = select_authorization(self._configuration, self._cache, self._http_client)
        await authorization.authorize(SIGNING_METHOD, url, request)

        request.headers["Accept"] = "application/json"
        if body is not None:
            request.headers["Content-Type"] = "application/json"
        return request

    async def dispatch(self, request: httpx.Request, destination: Any = None) -> Any:
        """Send ``request`` and decode the response body.

        Raises:
            OktaTransportError: If the request could not be sent.
            ResponseDecodeError: If the body is not valid JSON for ``destination``.
        """
        try:
            response = await self._http_client.send(request)
        except httpx.HTTPError as e:
            raise OktaTransportError(str(request.url), e) from e
        logger.debug(
            "oktaauth.shim.dispatched",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return decode_json_response(response, destination)
