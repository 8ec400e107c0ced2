from __future__ import annotations

import fnmatch
import json
import logging
import math
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from grant_matcher.cache.remote import RemoteCacheTier

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ABSOLUTE_EXPIRY_SECONDS = 1800.0
DEFAULT_SLIDING_EXPIRY_SECONDS = 600.0
DEFAULT_MAX_ENTRIES = 1024


@dataclass(slots=True)
class CacheEntry:
    key: str
    payload: bytes
    created_at: float
    expires_at: float
    sliding_seconds: float | None
    last_access: float

    def deadline(self) -> float:
        if self.sliding_seconds is None:
            return self.expires_at
        return min(self.expires_at, self.last_access + self.sliding_seconds)

    def is_expired(self, now: float) -> bool:
        return now >= self.deadline()


@dataclass(frozen=True, slots=True)
class CacheStatistics:
    hits: int
    misses: int
    evictions: int
    current_entries: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "currentEntries": self.current_entries,
            "hitRate": self.hit_rate,
        }


def _serialize(value: Any) -> bytes:
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _deserialize(payload: bytes) -> Any:
    return json.loads(payload.decode("utf-8"))


def _validate_key(key: str) -> None:
    if not isinstance(key, str) or not key.strip():
        raise ValueError("Cache key cannot be null or empty.")


class CacheStore:
    """Two-tier get-or-create cache.

    The local tier is an LRU map bounded by ``max_entries``; the optional
    remote tier is shared between instances. Values are stored as JSON
    payloads, so every read returns a fresh copy. Remote tier failures are
    logged and the store continues on the local tier alone.

    ``get_or_create`` runs at most one factory per key at a time within the
    process; concurrent callers for the same key wait for the in-flight result.
    """

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_absolute_expiry: float = DEFAULT_ABSOLUTE_EXPIRY_SECONDS,
        default_sliding_expiry: float | None = DEFAULT_SLIDING_EXPIRY_SECONDS,
        remote: RemoteCacheTier | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("Cache max_entries must be at least 1.")
        self._max_entries = max_entries
        self._default_absolute = default_absolute_expiry
        self._default_sliding = default_sliding_expiry
        self._remote = remote
        self._clock = clock

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._inflight: dict[str, Future[Any]] = {}
        self._inflight_lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

        logger.info(
            "Cache store initialized with %s tier",
            "local + remote" if remote is not None else "local",
        )

    @property
    def has_remote_tier(self) -> bool:
        return self._remote is not None

    def get_or_create(
        self,
        key: str,
        factory: Callable[[], T],
        absolute_expiry: float | None = None,
        sliding_expiry: float | None = None,
    ) -> T:
        _validate_key(key)

        found, value = self._read(key)
        if found:
            self._record(hit=True)
            return value

        with self._inflight_lock:
            future = self._inflight.get(key)
            owner = future is None
            if owner:
                found, value = self._read_local(key)
                if found:
                    self._record(hit=True)
                    return value
                future = Future()
                self._inflight[key] = future

        if not owner:
            logger.debug("Waiting for in-flight computation: %s", key)
            value = future.result()
            self._record(hit=True)
            return value

        self._record(hit=False)
        logger.debug("Cache miss, computing: %s", key)
        try:
            value = factory()
            self.set(key, value, absolute_expiry=absolute_expiry, sliding_expiry=sliding_expiry)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(value)
        finally:
            with self._inflight_lock:
                self._inflight.pop(key, None)
        return value

    def get(self, key: str) -> Any | None:
        _validate_key(key)
        found, value = self._read(key)
        self._record(hit=found)
        return value if found else None

    def set(
        self,
        key: str,
        value: Any,
        absolute_expiry: float | None = None,
        sliding_expiry: float | None = None,
    ) -> None:
        _validate_key(key)
        absolute = self._default_absolute if absolute_expiry is None else absolute_expiry
        sliding = self._default_sliding if sliding_expiry is None else sliding_expiry
        if absolute <= 0.0:
            raise ValueError("Absolute expiry must be positive.")
        if sliding is not None and sliding <= 0.0:
            raise ValueError("Sliding expiry must be positive.")

        payload = _serialize(value)
        self._store_local(key, payload, absolute, sliding)
        self._remote_call("set", key, payload, absolute)
        logger.debug("Set cache: %s", key)

    def remove(self, key: str) -> bool:
        _validate_key(key)
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        self._remote_call("delete", key)
        return removed

    def remove_by_pattern(self, pattern: str) -> int:
        """Remove keys matching a glob pattern (``*``, ``?``, ``[...]``)."""

        if not isinstance(pattern, str) or not pattern.strip():
            raise ValueError("Pattern cannot be null or empty.")
        if pattern == "*":
            return self.clear()

        with self._lock:
            matching = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
            for key in matching:
                del self._entries[key]
        self._remote_call("delete_pattern", pattern)
        logger.info("Removed %d cache entries matching pattern: %s", len(matching), pattern)
        return len(matching)

    def clear(self) -> int:
        logger.warning("Clearing all cache entries")
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        self._remote_call("clear")
        return removed

    def statistics(self) -> CacheStatistics:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return CacheStatistics(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                current_entries=len(self._entries),
            )

    def _record(self, *, hit: bool) -> None:
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def _read(self, key: str) -> tuple[bool, Any]:
        found, value = self._read_local(key)
        if found or self._remote is None:
            return found, value

        payload = self._remote_call("get", key)
        if payload is None:
            return False, None
        try:
            value = _deserialize(payload)
        except (UnicodeDecodeError, ValueError):
            logger.warning("Discarding undecodable remote cache payload for key: %s", key)
            return False, None

        # The local copy must not outlive the deadline the writer set.
        absolute = self._default_absolute
        remaining = self._remote_call("ttl", key)
        if remaining is not None:
            if remaining <= 0.0:
                return False, None
            absolute = min(absolute, float(remaining))
        self._store_local(key, payload, absolute, self._default_sliding)
        logger.debug("Cache hit (remote): %s", key)
        return True, value

    def _read_local(self, key: str) -> tuple[bool, Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if entry.is_expired(now):
                del self._entries[key]
                return False, None
            entry.last_access = now
            self._entries.move_to_end(key)
            payload = entry.payload
        return True, _deserialize(payload)

    def _store_local(
        self,
        key: str,
        payload: bytes,
        absolute: float,
        sliding: float | None,
    ) -> None:
        now = self._clock()
        entry = CacheEntry(
            key=key,
            payload=payload,
            created_at=now,
            expires_at=now + absolute,
            sliding_seconds=sliding,
            last_access=now,
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted cache entry under memory pressure: %s", evicted_key)

    def _remote_call(self, operation: str, *args: Any) -> Any:
        if self._remote is None:
            return None
        try:
            if operation == "set":
                key, payload, ttl_seconds = args
                return self._remote.set(key, payload, max(1, math.ceil(ttl_seconds)))
            return getattr(self._remote, operation)(*args)
        except Exception:
            logger.warning(
                "Remote cache %s failed; continuing with local tier", operation, exc_info=True
            )
            return None
