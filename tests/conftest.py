"""Shared pytest fixtures for oktaauth tests.

FakeOkta stands in for an Okta org behind httpx.MockTransport: it answers
the org token endpoint with fresh access tokens (or queued responses) and
every other path through a configurable API handler, recording requests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from oktaauth.config.storage import InMemoryStorage

TOKEN_PATH = "/oauth2/v1/token"


class FakeOkta:
    """httpx handler emulating the parts of an Okta org the core talks to."""

    def __init__(self) -> None:
        self.token_requests: list[httpx.Request] = []
        self.api_requests: list[httpx.Request] = []
        self.queued_token_responses: list[httpx.Response] = []
        self.issued = 0
        self.expires_in = 3600
        self.api_handler: Callable[[httpx.Request], httpx.Response] = lambda request: (
            httpx.Response(200, json={"id": "00u1", "status": "ACTIVE"})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            self.token_requests.append(request)
            if self.queued_token_responses:
                return self.queued_token_responses.pop(0)
            self.issued += 1
            return httpx.Response(
                200,
                json={
                    "token_type": "Bearer",
                    "access_token": f"access-{self.issued}",
                    "expires_in": self.expires_in,
                    "scope": "okta.users.read",
                },
            )
        self.api_requests.append(request)
        return self.api_handler(request)


class FakeClock:
    """Replacement for the ``time`` module inside oktaauth.auth.cache."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _pem(key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    return _pem(rsa_key)


@pytest.fixture(scope="session")
def ec_private_key_pem() -> str:
    return _pem(ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture
def fake_okta() -> FakeOkta:
    return FakeOkta()


@pytest.fixture
async def http_client(fake_okta: FakeOkta) -> AsyncIterator[httpx.AsyncClient]:
    """AsyncClient whose every request is answered by ``fake_okta``."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_okta)) as client:
        yield client


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze the credential cache's clock; advance it explicitly."""
    import oktaauth.auth.cache as cache_module

    clock = FakeClock()
    monkeypatch.setattr(cache_module, "time", clock)
    return clock


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()
