"""Error taxonomy for the Okta authentication core.

Every error raised by this package derives from OktaAuthError, which
carries a stable code, a human-readable message and optional details.
Codes follow the ``oktaauth:<area>/<reason>`` pattern.
"""
from __future__ import annotations

from typing import Any


class OktaAuthError(Exception):
    """Base exception for all oktaauth errors.

    Attributes:
        code: Error code following the oktaauth:<area>/<reason> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(OktaAuthError):
    """Raised when a configuration write is rejected or the stored record is unreadable.

    Covers a missing organization on first-time setup, a base URL that
    does not form a valid origin, and conflicting deprecated fields.
    Never retried: the caller has to fix the input.

    Attributes:
        field: Name of the offending field, if known
    """

    def __init__(
        self, message: str, field: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        details_dict: dict[str, Any] = {}
        if field is not None:
            details_dict["field"] = field
        if details:
            details_dict.update(details)
        super().__init__(code="oktaauth:config/invalid", message=message, details=details_dict)
        self.field = field


class UnknownAuthorizationModeError(OktaAuthError):
    """Raised when a client configuration names an unsupported authorization mode.

    Attributes:
        mode: The unrecognized mode value
    """

    def __init__(self, mode: object, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="oktaauth:auth/unknown_mode",
            message=f"unknown authorization mode {mode}",
            details={"mode": str(mode), **(details or {})},
        )
        self.mode = mode


class CredentialDerivationError(OktaAuthError):
    """Raised when an access token cannot be derived.

    Signing with an invalid private key, a rejected client assertion and
    an exhausted retry budget against the token endpoint all end here.

    Attributes:
        mode: Authorization mode that failed
        status_code: HTTP status from the token endpoint, if any
    """

    def __init__(
        self,
        mode: str,
        reason: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details_dict: dict[str, Any] = {"mode": mode}
        if status_code is not None:
            details_dict["status_code"] = status_code
        if details:
            details_dict.update(details)
        super().__init__(
            code="oktaauth:auth/derivation_failed",
            message=f"{mode} credential derivation failed: {reason}",
            details=details_dict,
        )
        self.mode = mode
        self.status_code = status_code


class RequestEncodingError(OktaAuthError):
    """Raised when a request body cannot be serialized to JSON."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="oktaauth:request/encoding_failed",
            message=f"Cannot encode request body: {reason}",
            details=details or {},
        )
        self.reason = reason


class OktaTransportError(OktaAuthError):
    """Raised when a request could not be sent or no response arrived.

    Attributes:
        url: Target URL of the failed request
        cause: The underlying httpx exception
    """

    def __init__(
        self, url: str, cause: Exception, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            code="oktaauth:transport/failed",
            message=f"Request to {url} failed: {cause}",
            details={"url": url, "error_type": type(cause).__name__, **(details or {})},
        )
        self.url = url
        self.cause = cause


class ResponseDecodeError(OktaAuthError):
    """Raised when a response body does not decode into the requested shape.

    Transport succeeded; the body is attached so callers can inspect it.

    Attributes:
        status_code: HTTP status of the response
        body: Raw response body
    """

    def __init__(
        self,
        status_code: int,
        body: bytes,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="oktaauth:response/decode_failed",
            message=f"Cannot decode response (status {status_code}): {reason}",
            details={"status_code": status_code, **(details or {})},
        )
        self.status_code = status_code
        self.body = body


class LegacyAPIError(OktaAuthError):
    """Raised by the legacy client when Okta answers with an error status.

    Attributes:
        status_code: HTTP status of the response
        error_code: Okta ``errorCode`` (e.g. E0000011), if present
        error_summary: Okta ``errorSummary``, if present
    """

    def __init__(
        self,
        status_code: int,
        error_code: str | None = None,
        error_summary: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        summary = error_summary or "no error summary"
        message = f"Okta API error {status_code}"
        if error_code:
            message += f" ({error_code})"
        message += f": {summary}"
        super().__init__(
            code="oktaauth:legacy/api_error",
            message=message,
            details={
                "status_code": status_code,
                "error_code": error_code,
                "error_summary": error_summary,
                **(details or {}),
            },
        )
        self.status_code = status_code
        self.error_code = error_code
        self.error_summary = error_summary
