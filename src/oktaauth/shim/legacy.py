"""Legacy shim: forwards to the first-generation client unchanged."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from oktaauth.config.client import OktaConfiguration
from oktaauth.legacy import LegacyOktaClient


class LegacyOktaShim:
    """Shim for configurations without an API token."""

    def __init__(self, client: LegacyOktaClient) -> None:
        self._client = client

    @property
    def legacy_client(self) -> LegacyOktaClient:
        return self._client

    def client(self) -> tuple[Optional[httpx.AsyncClient], Optional[OktaConfiguration]]:
        return None, None

    async def new_request(self, method: str, path: str, body: Any = None) -> httpx.Request:
        return self._client.new_request(method, path, body)

    async def dispatch(self, request: httpx.Request, destination: Any = None) -> Any:
        return await self._client.do(request, destination)
