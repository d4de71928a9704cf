"""Tests for the new-generation request builder and dispatcher."""

import asyncio
import io
from typing import Any

import httpx
import pytest
from pydantic import BaseModel, Field

from oktaauth.auth.cache import CredentialCache
from oktaauth.config.client import new_configuration
from oktaauth.config.entry import ConfigEntry
from oktaauth.errors import (
    OktaTransportError,
    RequestEncodingError,
    ResponseDecodeError,
    UnknownAuthorizationModeError,
)
from oktaauth.shim import NewOktaShim, OktaShim, create_shim, resolve_path

ORG_URL = "https://acme.okta.com"


class User(BaseModel):
    id: str
    status: str


class Profile(BaseModel):
    first_name: str = Field(alias="firstName")
    note: str = ""


def _ssws_shim(http_client: httpx.AsyncClient) -> NewOktaShim:
    return NewOktaShim(new_configuration(ORG_URL, token="tok123"), http_client=http_client)


class TestNewRequest:
    """Request building."""

    async def test_ssws_get_request(self, http_client: httpx.AsyncClient) -> None:
        """GET users on an SSWS org: URL, headers and no body."""
        shim = create_shim(
            ConfigEntry(organization="acme", token="tok123"), http_client=http_client
        )

        request = await shim.new_request("GET", "users")

        assert request.method == "GET"
        assert str(request.url) == "https://acme.okta.com/api/v1/users"
        assert request.headers["Authorization"] == "SSWS tok123"
        assert request.headers["Accept"] == "application/json"
        assert "Content-Type" not in request.headers
        assert request.content == b""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("users", "/api/v1/users"),
            ("users/00u1/lifecycle/activate", "/api/v1/users/00u1/lifecycle/activate"),
            ("/api/v1/users", "/api/v1/users"),
            ("/oauth2/v1/keys", "/oauth2/v1/keys"),
        ],
    )
    async def test_path_resolution(
        self, http_client: httpx.AsyncClient, path: str, expected: str
    ) -> None:
        """Relative paths get the API root once; absolute paths are kept."""
        request = await _ssws_shim(http_client).new_request("GET", path)
        assert request.url.path == expected
        assert request.url.path.count("/api/v1/") <= 1

    def test_resolve_path_prefixes_once(self) -> None:
        """Resolving an already resolved path does not add a second prefix."""
        assert resolve_path(resolve_path("groups")) == "/api/v1/groups"

    async def test_json_body_without_html_escaping(self, http_client: httpx.AsyncClient) -> None:
        """Bodies are JSON with <, > and & left as-is."""
        body = {"profile": {"note": "<b>Tom & Jerry</b>", "city": "Zürich"}}

        request = await _ssws_shim(http_client).new_request("POST", "users", body)

        assert request.headers["Content-Type"] == "application/json"
        raw = request.content.decode("utf-8")
        assert "<b>Tom & Jerry</b>" in raw
        assert "\\u003c" not in raw
        assert "Zürich" in raw

    async def test_bytes_body_sent_verbatim(self, http_client: httpx.AsyncClient) -> None:
        """Pre-encoded bodies are not re-serialized."""
        payload = b'{"already":"encoded"}'

        request = await _ssws_shim(http_client).new_request("PUT", "users/00u1", payload)

        assert request.content == payload
        assert request.headers["Content-Type"] == "application/json"

    async def test_buffer_body_sent_verbatim(self, http_client: httpx.AsyncClient) -> None:
        """Byte buffers are read and sent unchanged."""
        request = await _ssws_shim(http_client).new_request(
            "POST", "groups", io.BytesIO(b'{"profile":{}}')
        )
        assert request.content == b'{"profile":{}}'

    async def test_pydantic_body_uses_aliases(self, http_client: httpx.AsyncClient) -> None:
        """Pydantic models serialize by alias, matching Okta field names."""
        request = await _ssws_shim(http_client).new_request(
            "POST", "users", Profile(firstName="Ada", note="a&b")
        )
        assert request.content == b'{"firstName":"Ada","note":"a&b"}'

    async def test_unencodable_body(self, http_client: httpx.AsyncClient) -> None:
        """Values json cannot serialize raise RequestEncodingError."""
        with pytest.raises(RequestEncodingError) as exc_info:
            await _ssws_shim(http_client).new_request("POST", "users", {"when": object()})
        assert exc_info.value.code == "oktaauth:request/encoding_failed"

    async def test_authorization_signed_for_post(
        self, http_client: httpx.AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Authorization is computed for POST whatever the request method."""
        calls: list[tuple[str, str]] = []

        class Recorder:
            async def authorize(self, method: str, url: str, request: httpx.Request) -> None:
                calls.append((method, url))
                request.headers["Authorization"] = "Test x"

        monkeypatch.setattr(
            "oktaauth.shim.new.select_authorization", lambda *args: Recorder()
        )

        request = await _ssws_shim(http_client).new_request("DELETE", "users/00u1")

        assert calls == [("POST", "https://acme.okta.com/api/v1/users/00u1")]
        assert request.method == "DELETE"

    @pytest.mark.parametrize("mode", ["SSWS", "Bearer", "PrivateKey", "JWT"])
    async def test_exactly_one_authorization_header(
        self,
        http_client: httpx.AsyncClient,
        rsa_private_key_pem: str,
        mode: str,
    ) -> None:
        """Every mode yields a single Authorization header."""
        configuration = new_configuration(
            ORG_URL,
            token="tok123",
            authorization_mode=mode,
            private_key=rsa_private_key_pem,
            client_id="0oa1",
            client_assertion="h.p.s",
            scopes=("okta.users.read",),
        )
        shim = NewOktaShim(configuration, http_client=http_client)

        request = await shim.new_request("GET", "users", {"x": 1})

        assert len(request.headers.get_list("Authorization")) == 1

    async def test_derived_credentials_shared_across_requests(
        self, http_client: httpx.AsyncClient, rsa_private_key_pem: str, fake_okta
    ) -> None:
        """Requests built by one shim share its credential cache."""
        configuration = new_configuration(
            ORG_URL,
            authorization_mode="PrivateKey",
            private_key=rsa_private_key_pem,
            client_id="0oa1",
        )
        shim = NewOktaShim(
            configuration, http_client=http_client, cache=CredentialCache(default_ttl=60.0)
        )

        first = await shim.new_request("GET", "users")
        second = await shim.new_request("GET", "groups")

        assert len(fake_okta.token_requests) == 1
        assert first.headers["Authorization"] == second.headers["Authorization"] == (
            "Bearer access-1"
        )
        assert shim.cache.size() == 1

    async def test_unknown_mode(self, http_client: httpx.AsyncClient) -> None:
        """An unsupported mode is rejected when building the request."""
        shim = NewOktaShim(
            new_configuration(ORG_URL, token="tok", authorization_mode="Basic"),
            http_client=http_client,
        )
        with pytest.raises(UnknownAuthorizationModeError, match="unknown authorization mode Basic"):
            await shim.new_request("GET", "users")


class TestDispatch:
    """Sending built requests and decoding responses."""

    async def test_decodes_json(self, http_client: httpx.AsyncClient, fake_okta) -> None:
        """A JSON body is returned decoded."""
        shim = _ssws_shim(http_client)
        result = await shim.dispatch(await shim.new_request("GET", "users/me"))

        assert result == {"id": "00u1", "status": "ACTIVE"}
        assert fake_okta.api_requests[0].headers["Authorization"] == "SSWS tok123"

    async def test_validates_into_destination(self, http_client: httpx.AsyncClient) -> None:
        """A destination type is populated from the body."""
        shim = _ssws_shim(http_client)
        user = await shim.dispatch(await shim.new_request("GET", "users/me"), User)

        assert user == User(id="00u1", status="ACTIVE")

    async def test_list_destination(self, http_client: httpx.AsyncClient, fake_okta) -> None:
        """Generic destinations such as list[Model] are supported."""
        fake_okta.api_handler = lambda request: httpx.Response(
            200, json=[{"id": "00u1", "status": "ACTIVE"}, {"id": "00u2", "status": "STAGED"}]
        )
        shim = _ssws_shim(http_client)

        users = await shim.dispatch(await shim.new_request("GET", "users"), list[User])

        assert [u.id for u in users] == ["00u1", "00u2"]

    async def test_empty_body_returns_none(
        self, http_client: httpx.AsyncClient, fake_okta
    ) -> None:
        """204 No Content decodes to None without error."""
        fake_okta.api_handler = lambda request: httpx.Response(204)
        shim = _ssws_shim(http_client)

        result = await shim.dispatch(
            await shim.new_request("POST", "users/00u1/lifecycle/deactivate"), User
        )

        assert result is None

    async def test_invalid_json_raises_decode_error(
        self, http_client: httpx.AsyncClient, fake_okta
    ) -> None:
        """A non-JSON body raises ResponseDecodeError carrying the body."""
        fake_okta.api_handler = lambda request: httpx.Response(502, text="<html>bad gateway</html>")
        shim = _ssws_shim(http_client)

        with pytest.raises(ResponseDecodeError) as exc_info:
            await shim.dispatch(await shim.new_request("GET", "users"))

        assert exc_info.value.status_code == 502
        assert exc_info.value.body == b"<html>bad gateway</html>"

    async def test_shape_mismatch_raises_decode_error(
        self, http_client: httpx.AsyncClient, fake_okta
    ) -> None:
        """A body that does not fit the destination is a decode error."""
        fake_okta.api_handler = lambda request: httpx.Response(200, json={"unexpected": True})
        shim = _ssws_shim(http_client)

        with pytest.raises(ResponseDecodeError) as exc_info:
            await shim.dispatch(await shim.new_request("GET", "users/me"), User)

        assert exc_info.value.details["errors"]

    async def test_error_status_with_json_body_is_returned(
        self, http_client: httpx.AsyncClient, fake_okta
    ) -> None:
        """Error statuses are not mapped; their JSON body is decoded."""
        fake_okta.api_handler = lambda request: httpx.Response(
            404, json={"errorCode": "E0000007", "errorSummary": "Not found: Resource not found"}
        )
        shim = _ssws_shim(http_client)

        result = await shim.dispatch(await shim.new_request("GET", "users/nobody"))

        assert result["errorCode"] == "E0000007"

    async def test_transport_error(self) -> None:
        """Send failures raise OktaTransportError wrapping the cause."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            shim = _ssws_shim(client)
            request = await shim.new_request("GET", "users")
            with pytest.raises(OktaTransportError) as exc_info:
                await shim.dispatch(request)

        assert isinstance(exc_info.value.cause, httpx.ConnectTimeout)
        assert exc_info.value.url == "https://acme.okta.com/api/v1/users"
        assert exc_info.value.code == "oktaauth:transport/failed"

    async def test_cancellation_propagates(self) -> None:
        """Cancelling an in-flight dispatch raises CancelledError."""
        started = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(30)
            return httpx.Response(200, json={})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            shim = _ssws_shim(client)
            request = await shim.new_request("GET", "users")
            task = asyncio.create_task(shim.dispatch(request))
            await started.wait()
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task


class TestClientAccessor:
    """Exposure of the underlying client and configuration."""

    def test_client_returns_http_client_and_configuration(self) -> None:
        """The new shim hands out both underlying objects."""
        http_client = httpx.AsyncClient()
        configuration = new_configuration(ORG_URL, token="tok")
        shim = NewOktaShim(configuration, http_client=http_client)

        assert shim.client() == (http_client, configuration)

    def test_satisfies_protocol(self) -> None:
        """NewOktaShim implements the shared shim contract."""
        shim: Any = NewOktaShim(
            new_configuration(ORG_URL, token="t"), http_client=httpx.AsyncClient()
        )
        assert isinstance(shim, OktaShim)
