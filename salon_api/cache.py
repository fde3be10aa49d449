"""
Key-value caching for lookup data (services, categories).

The store is injected into ``LookupCache`` so tests and single-process
deployments can use the in-memory store while production points at Redis.
"""
import json
import logging
import time
from threading import Lock
from typing import Any, Callable, Optional, Protocol

import redis

from salon_api.core import config

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self, prefix: str = '') -> list[str]: ...

    def clear(self, prefix: str = '') -> int: ...


class InMemoryTTLStore:
    """Process-local store; entries expire ``ttl_seconds`` after being set."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = Lock()

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def keys(self, prefix: str = '') -> list[str]:
        with self._lock:
            self._purge_expired()
            return sorted(key for key in self._entries if key.startswith(prefix))

    def clear(self, prefix: str = '') -> int:
        with self._lock:
            matching = [key for key in self._entries if key.startswith(prefix)]
            for key in matching:
                del self._entries[key]
            return len(matching)


class RedisTTLStore:
    """Redis-backed store holding JSON-serialised values."""

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> 'RedisTTLStore':
        return cls(redis.from_url(url, decode_responses=True, socket_connect_timeout=5, socket_timeout=5))

    def get(self, key: str) -> Optional[Any]:
        value = self._client.get(key)
        if value is None:
            return None
        return json.loads(value)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._client.setex(key, ttl_seconds, json.dumps(value, default=str))

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def keys(self, prefix: str = '') -> list[str]:
        return sorted(self._client.scan_iter(match=f'{prefix}*'))

    def clear(self, prefix: str = '') -> int:
        matching = self.keys(prefix)
        if not matching:
            return 0
        return self._client.delete(*matching)


class LookupCache:
    """Namespaced cache with load-through semantics.

    Store failures never reach the caller: reads fall back to the loader and
    writes are skipped, both with a warning in the log.
    """

    def __init__(self, store: KeyValueStore, namespace: str = 'lookup', default_ttl: int = 3600):
        self.store = store
        self.namespace = namespace
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        return f'{self.namespace}:{key}'

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.store.get(self._key(key))
        except redis.RedisError as exc:
            logger.warning('Cache get failed for %s: %s', key, exc)
            return None
        logger.debug('Cache %s: %s', 'HIT' if value is not None else 'MISS', key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            self.store.set(self._key(key), value, ttl or self.default_ttl)
        except redis.RedisError as exc:
            logger.warning('Cache set failed for %s: %s', key, exc)
            return False
        return True

    def get_or_load(
        self,
        key: str,
        loader: Callable[[], Any],
        ttl: Optional[int] = None,
        force_refresh: bool = False,
    ) -> Any:
        if not force_refresh:
            cached_value = self.get(key)
            if cached_value is not None:
                return cached_value

        value = loader()
        # Empty results are not cached so newly added rows show up immediately.
        if value:
            self.set(key, value, ttl)
        return value

    def clear(self, key: Optional[str] = None) -> int:
        try:
            if key is not None:
                self.store.delete(self._key(key))
                return 1
            return self.store.clear(f'{self.namespace}:')
        except redis.RedisError as exc:
            logger.warning('Cache clear failed for %s: %s', key or self.namespace, exc)
            return 0

    def status(self) -> dict[str, Any]:
        try:
            cached_keys = self.store.keys(f'{self.namespace}:')
        except redis.RedisError as exc:
            logger.warning('Cache status unavailable: %s', exc)
            return {'available': False, 'keys': []}
        prefix_length = len(self.namespace) + 1
        return {'available': True, 'keys': [cached_key[prefix_length:] for cached_key in cached_keys]}


def build_lookup_cache() -> LookupCache:
    if config.REDIS_URL:
        logger.info('Using Redis lookup cache')
        store: KeyValueStore = RedisTTLStore.from_url(config.REDIS_URL)
    else:
        logger.info('Using in-memory lookup cache')
        store = InMemoryTTLStore()
    return LookupCache(store, default_ttl=config.LOOKUP_CACHE_TTL_SECONDS)
