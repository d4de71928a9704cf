"""Shared HTTP client for Okta API and token-endpoint calls.

Both shim generations send through an httpx.AsyncClient. By default one
client per process is shared, so connection pooling spans every shim;
tests and embedders may inject their own client or transport instead.

Environment Variables:
    OKTAAUTH_HTTP_TIMEOUT: Request timeout in seconds (default: 30)
"""

import io
import json
import os
import threading
from typing import Any, Optional

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from oktaauth.errors import RequestEncodingError, ResponseDecodeError

DEFAULT_TIMEOUT = 30.0
ENV_HTTP_TIMEOUT = "OKTAAUTH_HTTP_TIMEOUT"

# Connection pool limits for the shared client
DEFAULT_MAX_CONNECTIONS = 100
DEFAULT_MAX_KEEPALIVE_CONNECTIONS = 20

_default_client: Optional[httpx.AsyncClient] = None
_default_client_lock = threading.Lock()


def _get_timeout() -> float:
    raw = os.environ.get(ENV_HTTP_TIMEOUT, "").strip()
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError as e:
        raise ValueError(f"{ENV_HTTP_TIMEOUT} must be a number of seconds, got {raw!r}") from e
    if timeout <= 0:
        raise ValueError(f"{ENV_HTTP_TIMEOUT} must be positive, got {raw!r}")
    return timeout


def new_http_client(
    *,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with TLS verification and pooled connections.

    Args:
        timeout: Request timeout in seconds; defaults to OKTAAUTH_HTTP_TIMEOUT or 30.
        transport: Optional transport, e.g. httpx.MockTransport in tests.
    """
    kwargs: dict[str, object] = {
        "timeout": httpx.Timeout(timeout if timeout is not None else _get_timeout()),
        "limits": httpx.Limits(
            max_connections=DEFAULT_MAX_CONNECTIONS,
            max_keepalive_connections=DEFAULT_MAX_KEEPALIVE_CONNECTIONS,
        ),
        "follow_redirects": False,
    }
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.AsyncClient(**kwargs)  # type: ignore[arg-type]


def default_http_client() -> httpx.AsyncClient:
    """Return the process-wide client, creating it on first use."""
    global _default_client
    with _default_client_lock:
        if _default_client is None or _default_client.is_closed:
            _default_client = new_http_client()
        return _default_client


async def close_default_http_client() -> None:
    """Close the process-wide client; the next call creates a fresh one."""
    global _default_client
    with _default_client_lock:
        client, _default_client = _default_client, None
    if client is not None:
        await client.aclose()


def decode_json_response(response: httpx.Response, destination: Any = None) -> Any:
    """Decode a response body as JSON, optionally validating it.

    Args:
        response: A response whose body has been read.
        destination: Optional type (pydantic model, ``list[Model]``, ``dict``,
            ...) the decoded value must validate against.

    Returns:
        None for an empty body, else the decoded (and validated) value.

    Raises:
        ResponseDecodeError: If the body is not JSON or does not validate.
    """
    body = response.content
    if not body:
        return None
    try:
        value = json.loads(body)
    except ValueError as e:
        raise ResponseDecodeError(response.status_code, body, str(e)) from e
    if destination is None:
        return value
    try:
        return TypeAdapter(destination).validate_python(value)
    except ValidationError as e:
        raise ResponseDecodeError(
            response.status_code,
            body,
            f"body does not match {getattr(destination, '__name__', destination)}",
            details={"errors": e.errors(include_url=False)},
        ) from e


def encode_json_body(body: Any) -> Optional[bytes]:
    """Serialize a request body.

    Bytes and byte buffers are sent verbatim; pydantic models use their
    JSON serializer; anything else goes through ``json.dumps``, which
    leaves ``<``, ``>`` and ``&`` unescaped.

    Raises:
        RequestEncodingError: If the value is not JSON-serializable.
    """
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, io.BytesIO):
        return body.getvalue()
    try:
        if isinstance(body, BaseModel):
            return body.model_dump_json(by_alias=True).encode("utf-8")
        return json.dumps(body, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise RequestEncodingError(str(e), details={"body_type": type(body).__name__}) from e
