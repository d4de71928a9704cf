"""Contract shared by both Okta client generations."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from oktaauth.config.client import OktaConfiguration


@runtime_checkable
class OktaShim(Protocol):
    """Uniform request/dispatch interface over the Okta client generations.

    Callers build a request with new_request() and send it with
    dispatch(); they never set Authorization headers themselves.
    """

    def client(self) -> tuple[Optional[httpx.AsyncClient], Optional[OktaConfiguration]]:
        """Return the underlying HTTP client and client configuration.

        Only the new-generation shim has them; the legacy shim returns
        ``(None, None)``.
        """
        ...

    async def new_request(self, method: str, path: str, body: Any = None) -> httpx.Request:
        """Build an authorized request for ``path``.

        Args:
            method: HTTP method.
            path: Absolute path (``/api/v1/users``) or one relative to the
                API root (``users``).
            body: Optional body; bytes are sent as-is, anything else is
                JSON-encoded.
        """
        ...

    async def dispatch(self, request: httpx.Request, destination: Any = None) -> Any:
        """Send ``request`` and return its decoded JSON body.

        Args:
            request: Request from new_request().
            destination: Optional type the body must validate against.

        Returns:
            Decoded body, or None when the response has no body.
        """
        ...
