from __future__ import annotations

import logging
from typing import Protocol

import redis

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "grant-matcher"


class RemoteCacheTier(Protocol):
    """Shared cache tier used for consistency across service instances."""

    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, payload: bytes, ttl_seconds: int) -> None: ...

    def ttl(self, key: str) -> float | None:
        """Seconds until the stored value expires, or None when unknown."""
        ...

    def delete(self, key: str) -> None: ...

    def delete_pattern(self, pattern: str) -> None: ...

    def clear(self) -> None: ...


class RedisCacheTier:
    """Remote tier backed by Redis; keys live under a namespace prefix."""

    def __init__(self, client: redis.Redis, *, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, *, namespace: str = DEFAULT_NAMESPACE) -> RedisCacheTier:
        client = redis.Redis.from_url(url, socket_timeout=1.0, socket_connect_timeout=1.0)
        logger.info("Connecting remote cache tier at %s", url)
        return cls(client, namespace=namespace)

    def _qualify(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def get(self, key: str) -> bytes | None:
        return self._client.get(self._qualify(key))

    def set(self, key: str, payload: bytes, ttl_seconds: int) -> None:
        self._client.set(self._qualify(key), payload, ex=ttl_seconds)

    def ttl(self, key: str) -> float | None:
        # pttl: -2 when the key is gone, -1 when it has no expiry.
        remaining_ms = self._client.pttl(self._qualify(key))
        if remaining_ms is None or remaining_ms == -1:
            return None
        return max(remaining_ms, 0) / 1000.0

    def delete(self, key: str) -> None:
        self._client.delete(self._qualify(key))

    def delete_pattern(self, pattern: str) -> None:
        # Patterns follow fnmatch rules, where a backslash is a literal character.
        match = self._qualify(pattern.replace("\\", "\\\\"))
        keys = list(self._client.scan_iter(match=match, count=500))
        if keys:
            self._client.delete(*keys)

    def clear(self) -> None:
        self.delete_pattern("*")
