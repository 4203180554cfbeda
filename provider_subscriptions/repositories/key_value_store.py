"""Key-value storage for short-lived coordination state (sweep leases).

Redis backs it when a URL is configured so that several service instances
agree on which one runs the expiration sweep. The in-memory implementation
is suitable for tests and single-process use.
"""

import threading
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis

from provider_subscriptions.logging_config import get_logger

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Operations used by the expiration sweep lease."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        ...

    def delete(self, key: str) -> bool:
        ...


class InMemoryKeyValueStore:
    """Process-local key-value store with TTL support."""

    def __init__(self, monotonic: Callable[[], float] = time.monotonic) -> None:
        self._monotonic = monotonic
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _live_value(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._monotonic() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live_value(key)

    def set(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        with self._lock:
            if only_if_absent and self._live_value(key) is not None:
                return False
            expires_at = self._monotonic() + ttl_seconds if ttl_seconds else None
            self._entries[key] = (value, expires_at)
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisKeyValueStore:
    """Redis-backed key-value store; every key is namespaced with a prefix."""

    def __init__(self, client: "redis.Redis", key_prefix: str = "") -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "") -> "RedisKeyValueStore":
        client = redis.Redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        logger.info("redis_key_value_store_initialized", key_prefix=key_prefix)
        return cls(client, key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        return self._client.get(self._key(key))

    def set(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
        only_if_absent: bool = False,
    ) -> bool:
        result = self._client.set(self._key(key), value, ex=ttl_seconds, nx=only_if_absent)
        return bool(result)

    def delete(self, key: str) -> bool:
        return self._client.delete(self._key(key)) > 0


def create_lease_store() -> Optional[KeyValueStore]:
    """Build the lease store from configuration.

    Returns:
        A Redis-backed store, or None when no Redis URL is configured
    """
    from provider_subscriptions.config import get_config

    config = get_config()
    if not config.redis_url:
        logger.info("lease_store_disabled", reason="no redis_url configured")
        return None
    return RedisKeyValueStore.from_url(config.redis_url, config.cache_key_prefix)
