"""Observability helpers for oktaauth.

Structured logging via structlog, with redaction of credential fields.

Example:
    >>> from oktaauth.observability import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("oktaauth.config.written", organization="acme")
"""

from oktaauth.observability.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    sanitize_for_logging,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "sanitize_for_logging",
]
