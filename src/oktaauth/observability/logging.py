"""Structured logging for oktaauth.

All package logging goes through structlog bound to the standard library
root logger, rendered either as coloured console lines or as one JSON
object per line on stderr (stdout stays free for CLI output).

Events use dotted names such as ``oktaauth.shim.selected``. Every event,
including records from foreign stdlib loggers, passes through
redact_credentials before rendering, so a field whose name looks like a
credential (``api_token``, ``private_key``, ``client_assertion``, ...)
is printed as ``***REDACTED***`` whatever its value.

Environment Variables:
    OKTAAUTH_LOG_FORMAT: "json" or "console" (default: console)
    OKTAAUTH_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR (default: INFO)
    OKTAAUTH_SERVICE_NAME: Value of the ``service`` field (default: oktaauth)

Example:
    >>> configure_logging(log_format="json", log_level="DEBUG")
    >>> get_logger(__name__).info("oktaauth.shim.selected", generation="new")
"""

import logging
import os
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_SERVICE_NAME = "oktaauth"

ENV_LOG_FORMAT = "OKTAAUTH_LOG_FORMAT"
ENV_LOG_LEVEL = "OKTAAUTH_LOG_LEVEL"
ENV_SERVICE_NAME = "OKTAAUTH_SERVICE_NAME"

REDACTED_PLACEHOLDER = "***REDACTED***"

# Lower-case substrings that mark a field name as holding a credential
_CREDENTIAL_MARKERS = ("password", "token", "secret", "key", "authorization", "assertion")

_logging_configured = False


def _is_sensitive_key(key: object) -> bool:
    name = str(key).lower()
    return any(marker in name for marker in _CREDENTIAL_MARKERS)


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return sanitize_for_logging(value)
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def sanitize_for_logging(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with credential-like fields redacted.

    Matching is on the field name, case-insensitively, and recurses into
    nested mappings and lists.

    Example:
        >>> sanitize_for_logging({"org_name": "acme", "api_token": "00abc"})
        {'org_name': 'acme', 'api_token': '***REDACTED***'}
    """
    return {
        key: REDACTED_PLACEHOLDER if _is_sensitive_key(key) else _redact(value)
        for key, value in data.items()
    }


def redact_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """structlog processor applying sanitize_for_logging to each event."""
    return sanitize_for_logging(event_dict)


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_credentials,
    ]


def _render_chain(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Route structlog and stdlib logging to stderr.

    Unset arguments fall back to the environment, then to the defaults.
    An unknown level means INFO and an unknown format means console.

    Args:
        log_format: "json" or "console".
        log_level: Minimum level name.
        service_name: Bound to every event as ``service``.
        force: Reconfigure even if logging was configured before.
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    log_format = (log_format or os.environ.get(ENV_LOG_FORMAT) or DEFAULT_LOG_FORMAT).lower()
    level_name = (log_level or os.environ.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    service = service_name or os.environ.get(ENV_SERVICE_NAME) or DEFAULT_SERVICE_NAME

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_render_chain(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    structlog.contextvars.bind_contextvars(service=service)
    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger for ``name``, applying the default configuration once."""
    if not _logging_configured:
        configure_logging()
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Add fields to every subsequent event in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
