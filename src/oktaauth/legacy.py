"""First-generation Okta API client.

Configurations created before API tokens became mandatory talk to Okta
through this client. It knows a single authorization scheme (SSWS with an
optional token), resolves paths against ``https://{org}.{domain}/api/v1/``
and turns Okta error bodies into LegacyAPIError.
"""

from typing import Any, Optional

import httpx

from oktaauth.errors import LegacyAPIError, OktaTransportError
from oktaauth.http import decode_json_response, encode_json_body
from oktaauth.observability import get_logger

logger = get_logger(__name__)

API_PATH = "/api/v1/"


class LegacyOktaClient:
    """Okta client modelled on the original management SDK.

    Example:
        >>> client = LegacyOktaClient(http_client, "acme", "okta.com")
        >>> request = client.new_request("GET", "users/me")
        >>> me = await client.do(request)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        org: str,
        domain: str,
        api_token: str = "",
    ) -> None:
        """Create a client for ``https://{org}.{domain}``.

        Args:
            http_client: Client used to send requests.
            org: Organization subdomain.
            domain: Base domain, e.g. okta.com or oktapreview.com.
            api_token: Optional SSWS token; empty for anonymous calls.

        Raises:
            ValueError: If org and domain do not form a valid URL.
        """
        try:
            self.base_url = httpx.URL(f"https://{org}.{domain}{API_PATH}")
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid Okta org {org!r} / domain {domain!r}: {e}") from e
        self._http_client = http_client
        self._api_token = api_token

    def new_request(self, method: str, url: str, body: Any = None) -> httpx.Request:
        """Build a request for ``url`` resolved against the API base URL.

        Raises:
            RequestEncodingError: If ``body`` is not JSON-serializable.
        """
        content = encode_json_body(body)
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._api_token:
            headers["Authorization"] = f"SSWS {self._api_token}"
        return httpx.Request(method, self.base_url.join(url), headers=headers, content=content)

    async def do(self, request: httpx.Request, destination: Any = None) -> Any:
        """Send ``request`` and decode the JSON response.

        Raises:
            OktaTransportError: If the request could not be sent.
            LegacyAPIError: If Okta answered with a non-2xx status.
            ResponseDecodeError: If the body is not valid JSON for ``destination``.
        """
        try:
            response = await self._http_client.send(request)
        except httpx.HTTPError as e:
            raise OktaTransportError(str(request.url), e) from e
        _check_response(response)
        return decode_json_response(response, destination)


def _check_response(response: httpx.Response) -> None:
    if response.is_success:
        return
    error_code: Optional[str] = None
    error_summary: Optional[str] = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error_code = body.get("errorCode")
        error_summary = body.get("errorSummary")
    logger.debug(
        "oktaauth.legacy.api_error",
        status_code=response.status_code,
        error_code=error_code,
    )
    raise LegacyAPIError(response.status_code, error_code, error_summary)
