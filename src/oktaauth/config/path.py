"""Read and write operations for the stored Okta configuration.

These functions back the ``config`` endpoint: they merge incoming fields
into the stored ConfigEntry, accept the deprecated field names
(``organization``, ``token``, ``production``, ``ttl``, ``max_ttl``) next to
their replacements, and surface a warning whenever MFA bypass is enabled.

Example:
    >>> storage = InMemoryStorage()
    >>> await write_config(storage, {"org_name": "acme", "api_token": "00abc"}, create=True)
    >>> (await read_config(storage)).data["org_name"]
    'acme'
"""

from __future__ import annotations

import ipaddress
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from oktaauth.config.entry import ConfigEntry
from oktaauth.config.storage import Storage, StorageEntry
from oktaauth.errors import ConfigurationError
from oktaauth.observability import get_logger, sanitize_for_logging

logger = get_logger(__name__)

CONFIG_KEY = "config"

MFA_BYPASS_WARNING = (
    "Okta MFA bypass is configured. In addition to ignoring Okta MFA requests, "
    "certain other account statuses will not be seen, such as PASSWORD_EXPIRED. "
    "Authentication will succeed in these cases."
)

VALID_TOKEN_TYPES = frozenset({"default", "service", "batch", "default-service", "default-batch"})

_DURATION_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)([smhd])")
_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_TRUE_STRINGS = frozenset({"true", "1"})
_FALSE_STRINGS = frozenset({"false", "0"})


@dataclass
class ConfigResponse:
    """Result of a config operation: response fields plus user-facing warnings."""

    data: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)


def parse_duration_seconds(value: Any, field_name: str) -> int:
    """Parse a duration given as seconds or as a string such as ``"1h30m"``.

    Fractional values (``1.5``, ``"1.5h"``) are rounded to whole seconds.

    Raises:
        ConfigurationError: If the value is negative or not a duration.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name}: expected a duration, got {value!r}", field=field_name)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ConfigurationError(
                f"{field_name}: expected a duration, got {value!r}", field=field_name
            )
        seconds = round(value)
    elif isinstance(value, str):
        text = value.strip()
        if _DURATION_NUMBER.fullmatch(text):
            seconds = round(float(text))
        else:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(n + u for n, u in parts) != text:
                raise ConfigurationError(
                    f"{field_name}: cannot parse duration {value!r}", field=field_name
                )
            seconds = round(sum(float(n) * _DURATION_UNITS[u] for n, u in parts))
    else:
        raise ConfigurationError(f"{field_name}: expected a duration, got {value!r}", field=field_name)
    if seconds < 0:
        raise ConfigurationError(f"{field_name}: duration must not be negative", field=field_name)
    return seconds


def parse_bool(value: Any, field_name: str) -> bool:
    """Parse a flag given as a bool or as true/false/1/0 in any case.

    Raises:
        ConfigurationError: For any other value.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"{field_name}: expected a boolean, got {value!r}", field=field_name)


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


def _present(data: Mapping[str, Any], key: str) -> bool:
    return data.get(key) is not None


async def load_config(storage: Storage) -> Optional[ConfigEntry]:
    """Load the stored ConfigEntry, or None when nothing is configured.

    Deprecated ``ttl``/``max_ttl`` values back-fill empty token TTLs.

    Raises:
        ConfigurationError: If the stored record is not a valid entry.
    """
    entry = await storage.get(CONFIG_KEY)
    if entry is None:
        return None
    try:
        cfg = ConfigEntry.model_validate(entry.decode_json())
    except ValueError as e:
        raise ConfigurationError(f"stored configuration is invalid: {e}") from e
    cfg.upgrade_deprecated_ttls()
    return cfg


async def config_exists(storage: Storage) -> bool:
    return await load_config(storage) is not None


async def read_config(storage: Storage) -> Optional[ConfigResponse]:
    """Return the configuration as response fields, or None if unset."""
    cfg = await load_config(storage)
    if cfg is None:
        return None

    data: dict[str, Any] = {
        "organization": cfg.organization,
        "org_name": cfg.organization,
        "bypass_okta_mfa": cfg.bypass_okta_mfa,
    }
    cfg.populate_token_data(data)

    if cfg.base_url:
        data["base_url"] = cfg.base_url
    if cfg.is_production is not None:
        data["production"] = cfg.is_production
    if cfg.ttl > 0:
        data["ttl"] = cfg.ttl
    if cfg.max_ttl > 0:
        data["max_ttl"] = cfg.max_ttl

    resp = ConfigResponse(data=data)
    if cfg.bypass_okta_mfa:
        resp.add_warning(MFA_BYPASS_WARNING)
    return resp


def _apply_token_fields(cfg: ConfigEntry, data: Mapping[str, Any]) -> None:
    for name in ("token_ttl", "token_max_ttl", "token_explicit_max_ttl", "token_period"):
        if _present(data, name):
            setattr(cfg, name, parse_duration_seconds(data[name], name))

    if _present(data, "token_policies"):
        cfg.token_policies = sorted(set(_string_list(data["token_policies"])))

    if _present(data, "token_bound_cidrs"):
        cidrs = _string_list(data["token_bound_cidrs"])
        for cidr in cidrs:
            try:
                ipaddress.ip_network(cidr, strict=False)
            except ValueError as e:
                raise ConfigurationError(
                    f"invalid token_bound_cidrs entry {cidr!r}: {e}", field="token_bound_cidrs"
                ) from e
        cfg.token_bound_cidrs = cidrs

    if _present(data, "token_no_default_policy"):
        cfg.token_no_default_policy = parse_bool(
            data["token_no_default_policy"], "token_no_default_policy"
        )

    if _present(data, "token_num_uses"):
        num_uses = int(data["token_num_uses"])
        if num_uses < 0:
            raise ConfigurationError("token_num_uses cannot be negative", field="token_num_uses")
        cfg.token_num_uses = num_uses

    if _present(data, "token_type"):
        token_type = str(data["token_type"])
        if token_type not in VALID_TOKEN_TYPES:
            raise ConfigurationError(f"invalid token_type {token_type!r}", field="token_type")
        cfg.token_type = token_type


def _upgrade_value(
    cfg: ConfigEntry, data: Mapping[str, Any], old_key: str, new_key: str
) -> None:
    """Move a deprecated duration field onto its replacement.

    Setting the old field writes both; setting the new one clears the old.
    """
    old_given = _present(data, old_key)
    new_given = _present(data, new_key)
    if old_given and new_given:
        raise ConfigurationError(
            f"Cannot specify both {old_key!r} and {new_key!r}", field=old_key
        )
    if old_given:
        seconds = parse_duration_seconds(data[old_key], old_key)
        setattr(cfg, old_key, seconds)
        setattr(cfg, new_key, seconds)
    elif new_given:
        setattr(cfg, old_key, 0)


async def write_config(
    storage: Storage, data: Mapping[str, Any], *, create: bool = False
) -> ConfigResponse:
    """Merge ``data`` into the stored configuration and persist it.

    Args:
        storage: Backend holding the ``config`` record.
        data: Incoming fields; keys absent or None are left unchanged.
        create: True for first-time setup, where an organization is required.

    Returns:
        ConfigResponse carrying the MFA-bypass warning when applicable.

    Raises:
        ConfigurationError: On a missing organization, an unparsable base
            URL or invalid token parameters.
    """
    logger.debug(
        "oktaauth.config.write_requested",
        create=create,
        fields=sanitize_for_logging({k: v for k, v in data.items() if v is not None}),
    )
    cfg = await load_config(storage)
    if cfg is None:
        cfg = ConfigEntry()

    if _present(data, "org_name"):
        cfg.organization = str(data["org_name"])
    if not cfg.organization and _present(data, "organization"):
        cfg.organization = str(data["organization"])
    if not cfg.organization and create:
        raise ConfigurationError("org_name is missing", field="org_name")

    if _present(data, "api_token"):
        cfg.token = str(data["api_token"])
    elif _present(data, "token"):
        cfg.token = str(data["token"])

    if _present(data, "base_url"):
        base_url = str(data["base_url"])
        try:
            httpx.URL(f"https://{cfg.organization}.{base_url}")
        except httpx.InvalidURL as e:
            raise ConfigurationError(
                f"Error parsing given base_url: {e}", field="base_url"
            ) from e
        cfg.base_url = base_url

    # production only matters without base_url; it is kept for compatibility
    if not cfg.base_url:
        if _present(data, "production"):
            cfg.is_production = parse_bool(data["production"], "production")
    else:
        cfg.is_production = None

    if _present(data, "bypass_okta_mfa"):
        cfg.bypass_okta_mfa = parse_bool(data["bypass_okta_mfa"], "bypass_okta_mfa")

    try:
        _apply_token_fields(cfg, data)
        _upgrade_value(cfg, data, "ttl", "token_ttl")
        _upgrade_value(cfg, data, "max_ttl", "token_max_ttl")
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"invalid token parameters: {e}") from e

    if cfg.token_max_ttl and cfg.token_ttl > cfg.token_max_ttl:
        raise ConfigurationError(
            "'token_ttl' cannot be greater than 'token_max_ttl'", field="token_ttl"
        )

    await storage.put(StorageEntry.from_json(CONFIG_KEY, cfg.to_storage_json()))
    logger.info(
        "oktaauth.config.written",
        organization=cfg.organization,
        base_domain=cfg.base_domain(),
        uses_new_client=bool(cfg.token),
        bypass_okta_mfa=cfg.bypass_okta_mfa,
    )

    resp = ConfigResponse()
    if cfg.bypass_okta_mfa:
        resp.add_warning(MFA_BYPASS_WARNING)
    return resp
