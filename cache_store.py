"""Redis-backed artifact cache with a start-up reachability flag.

The store is probed once when it is constructed. If the probe fails, the
store stays unusable for the lifetime of the process: reads report
UNAVAILABLE and writes are skipped without touching Redis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import redis

LOGGER = logging.getLogger(__name__)

SOCKET_TIMEOUT_SECONDS = 5


class CacheStatus(Enum):
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class CacheResult:
    status: CacheStatus
    value: bytes | None = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT


class CacheStore:
    """Key/value store with a fixed TTL applied to every write."""

    def __init__(self, client: redis.Redis | None, ttl_seconds: int, usable: bool = True):
        self._client = client
        self.ttl_seconds = ttl_seconds
        self._usable = usable and client is not None

    @classmethod
    def connect(cls, url: str, ttl_seconds: int) -> CacheStore:
        """Create a store from a connection URL and probe it with PING."""
        if not url:
            LOGGER.warning("No cache URL configured; artifacts will be generated directly")
            return cls(None, ttl_seconds, usable=False)

        try:
            client = redis.Redis.from_url(
                url,
                socket_timeout=SOCKET_TIMEOUT_SECONDS,
                socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
            )
            client.ping()
        except (redis.RedisError, ValueError) as exc:
            LOGGER.error("Error connecting to Redis, cache disabled: %s", exc)
            return cls(None, ttl_seconds, usable=False)

        LOGGER.info("Successfully connected to Redis")
        return cls(client, ttl_seconds, usable=True)

    @property
    def usable(self) -> bool:
        return self._usable

    def get(self, key: str) -> CacheResult:
        if not self._usable:
            return CacheResult(CacheStatus.UNAVAILABLE)

        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            LOGGER.warning("Redis GET failed for key=%s: %s", key, exc)
            return CacheResult(CacheStatus.UNAVAILABLE)

        if value is None:
            return CacheResult(CacheStatus.MISS)
        return CacheResult(CacheStatus.HIT, bytes(value))

    def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> bool:
        """Write ``value`` with the store TTL; returns False if the write did not happen."""
        if not self._usable:
            return False

        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        try:
            self._client.set(key, value, ex=ttl)
        except redis.RedisError as exc:
            LOGGER.warning("Redis SET failed for key=%s size=%s: %s", key, len(value), exc)
            return False

        LOGGER.info("Cached key=%s size=%s ttl=%ss", key, len(value), ttl)
        return True
