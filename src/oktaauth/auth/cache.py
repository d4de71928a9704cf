"""Expiring cache for derived authorization material.

Access tokens obtained by exchanging a signed client assertion are cached
here so repeated requests under the same identity skip the signing and the
token-endpoint round trip. Entries carry a fixed TTL (default 1 second) and
are evicted lazily on lookup; nothing sweeps the cache in the background.

Keys are deterministic digests of the signing inputs, see cache_key().
"""

import hashlib
import time
from threading import Lock
from typing import Generic, Optional, TypeVar

# Default TTL in seconds for derived credentials
DEFAULT_CREDENTIAL_TTL = 1.0

V = TypeVar("V")


def cache_key(*parts: object) -> str:
    """Build a deterministic cache key from signing inputs.

    Parts are joined with a separator that cannot occur in URLs or client
    ids and hashed, so keys never hold raw inputs.
    """
    joined = "\x1f".join(repr(part) for part in parts)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


class _CacheEntry(Generic[V]):
    def __init__(self, value: V, ttl: float) -> None:
        self.value = value
        self.expires_at = time.monotonic() + ttl

    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class CredentialCache(Generic[V]):
    """Thread-safe in-memory key/value store with per-entry TTL.

    One instance is shared by every request built through a shim, so it
    must tolerate concurrent access from tasks and threads alike.

    Example:
        >>> cache: CredentialCache[str] = CredentialCache(default_ttl=1.0)
        >>> cache.set("k", "Bearer abc")
        >>> cache.get("k")
        'Bearer abc'
    """

    def __init__(self, default_ttl: float = DEFAULT_CREDENTIAL_TTL) -> None:
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        self._entries: dict[str, _CacheEntry[V]] = {}
        self._lock = Lock()
        self._default_ttl = default_ttl

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: V, ttl: Optional[float] = None) -> None:
        """Store ``value``, replacing any previous entry for ``key``.

        Args:
            key: Cache key from cache_key().
            value: Derived credential.
            ttl: Seconds until expiry; defaults to the cache's fixed TTL.
        """
        if ttl is None:
            ttl = self._default_ttl
        with self._lock:
            self._entries[key] = _CacheEntry(value, ttl)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)
