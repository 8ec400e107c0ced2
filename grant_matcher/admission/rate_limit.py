from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"
DEFAULT_GC_INTERVAL_SECONDS = 600.0


@dataclass(frozen=True, slots=True)
class RateWindow:
    seconds: float
    max_requests: int

    def __post_init__(self) -> None:
        if self.seconds <= 0.0:
            raise ValueError("Rate window length must be positive.")
        if self.max_requests < 1:
            raise ValueError("Rate window must allow at least one request.")


DEFAULT_WINDOWS: tuple[RateWindow, ...] = (
    RateWindow(seconds=60.0, max_requests=60),
    RateWindow(seconds=300.0, max_requests=200),
)


@dataclass(frozen=True, slots=True)
class AdmissionDecision:
    allowed: bool
    client_id: str
    retry_after_seconds: float = 0.0

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(slots=True)
class _ClientWindow:
    timestamps: deque[float] = field(default_factory=deque)
    lock: threading.Lock = field(default_factory=threading.Lock)
    last_seen: float = 0.0
    retired: bool = False


def resolve_client_id(
    subject: str | None = None,
    forwarded_for: str | None = None,
    real_ip: str | None = None,
) -> str:
    """Subject claim first, then the forwarded client IP, then a shared bucket."""

    if subject and subject.strip():
        return f"user:{subject.strip()}"
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"
    if real_ip and real_ip.strip():
        return f"ip:{real_ip.strip()}"
    return UNKNOWN_CLIENT


class RateLimiter:
    """Sliding-window admission control over several simultaneous horizons.

    A request is rejected when any window already holds ``max_requests``
    timestamps. Rejected requests are not recorded. Clients idle for longer
    than the longest window are dropped on the next collection pass.
    """

    def __init__(
        self,
        windows: Sequence[RateWindow] = DEFAULT_WINDOWS,
        *,
        clock: Callable[[], float] = time.monotonic,
        gc_interval_seconds: float = DEFAULT_GC_INTERVAL_SECONDS,
    ) -> None:
        if not windows:
            raise ValueError("RateLimiter requires at least one window.")
        self._windows = tuple(sorted(windows, key=lambda window: window.seconds))
        self._horizon = self._windows[-1].seconds
        self._clock = clock
        self._gc_interval = gc_interval_seconds
        self._clients: dict[str, _ClientWindow] = {}
        self._clients_lock = threading.Lock()
        self._last_gc = clock()

    @property
    def windows(self) -> tuple[RateWindow, ...]:
        return self._windows

    def tracked_clients(self) -> int:
        with self._clients_lock:
            return len(self._clients)

    def admit(self, client_id: str | None) -> AdmissionDecision:
        resolved_id = client_id or UNKNOWN_CLIENT
        now = self._clock()
        if now - self._last_gc >= self._gc_interval:
            self.collect_idle()

        while True:
            state = self._client_state(resolved_id)
            with state.lock:
                if state.retired:
                    continue
                return self._admit_locked(resolved_id, state, now)

    def collect_idle(self) -> int:
        now = self._clock()
        removed = 0
        with self._clients_lock:
            self._last_gc = now
            for client_id, state in list(self._clients.items()):
                with state.lock:
                    if now - state.last_seen <= self._horizon:
                        continue
                    state.retired = True
                del self._clients[client_id]
                removed += 1
        if removed:
            logger.debug("Cleaned up %d rate limit tracking entries", removed)
        return removed

    def _client_state(self, client_id: str) -> _ClientWindow:
        with self._clients_lock:
            state = self._clients.get(client_id)
            if state is None:
                state = _ClientWindow(last_seen=self._clock())
                self._clients[client_id] = state
            return state

    def _admit_locked(self, client_id: str, state: _ClientWindow, now: float) -> AdmissionDecision:
        timestamps = state.timestamps
        state.last_seen = max(state.last_seen, now)
        while timestamps and timestamps[0] <= now - self._horizon:
            timestamps.popleft()

        retry_after = 0.0
        for window in self._windows:
            cutoff = now - window.seconds
            in_window = [stamp for stamp in timestamps if stamp > cutoff]
            if len(in_window) >= window.max_requests:
                retry_after = max(retry_after, in_window[0] + window.seconds - now)

        if retry_after > 0.0:
            logger.warning("Rate limit exceeded for client: %s", client_id)
            return AdmissionDecision(
                allowed=False, client_id=client_id, retry_after_seconds=retry_after
            )

        timestamps.append(now)
        return AdmissionDecision(allowed=True, client_id=client_id)
