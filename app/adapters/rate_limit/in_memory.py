"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the check-then-update for a key happens under one lock, so
  decisions for a key are linearizable and a burst can never exceed the limit.
- Bounded: expired records are swept lazily and the number of tracked keys is
  capped with least-recently-used eviction.
"""

from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _ClientWindow:
    window_start: float
    count: int


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Admit at most ``limit`` requests per key within ``window_seconds``.

    The window is anchored on the first request after the previous window
    expired, not on wall-clock boundaries:

    - no record, or ``now > window_start + window``: start a new window, admit;
    - live window with ``count < limit``: count it, admit;
    - live window with ``count >= limit``: reject, count unchanged.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        max_keys: int | None = None,
        sweep_interval_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum number of admitted requests per window.
            window_seconds: Length of a client's window in seconds.
            max_keys: Maximum number of tracked clients (None for unlimited).
            sweep_interval_seconds: Minimum time between sweeps of expired
                records. Defaults to ``window_seconds``.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If any bound is invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_keys is not None and max_keys < 1:
            raise ValueError("max_keys must be >= 1")
        if sweep_interval_seconds is not None and sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._max_keys = max_keys
        self._sweep_interval = sweep_interval_seconds or window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: OrderedDict[str, _ClientWindow] = OrderedDict()
        self._next_sweep_at = clock() + self._sweep_interval
        self._evictions = 0
        self._rejections = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def _is_expired(self, window: _ClientWindow, now: float) -> bool:
        return now > window.window_start + self._window_seconds

    def _reset_at(self, window: _ClientWindow) -> int:
        return int(math.ceil(window.window_start + self._window_seconds))

    def _sweep_expired_locked(self, now: float) -> None:
        if now < self._next_sweep_at:
            return
        expired = [key for key, window in self._windows.items() if self._is_expired(window, now)]
        for key in expired:
            del self._windows[key]
        self._evictions += len(expired)
        self._next_sweep_at = now + self._sweep_interval

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_keys is None:
            return
        while len(self._windows) > self._max_keys:
            # popitem(last=False) drops the least recently seen client
            self._windows.popitem(last=False)
            self._evictions += 1

    def _allowed(self, window: _ClientWindow) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=self._limit - window.count,
            reset_at=self._reset_at(window),
            retry_after_seconds=None,
        )

    def _blocked(self, window: _ClientWindow, now: float) -> RateLimitResult:
        # The window is still live at exactly window_start + window_seconds,
        # so the earliest admissible second is strictly after it.
        retry_after = int(math.floor(window.window_start + self._window_seconds - now)) + 1
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=self._reset_at(window),
            retry_after_seconds=max(1, retry_after),
        )

    def consume(self, key: str) -> RateLimitResult:
        """Record one request for ``key`` and decide whether it is admitted.

        Args:
            key: Client identity for rate limiting.

        Returns:
            RateLimitResult with the admission decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()
            self._sweep_expired_locked(now)

            window = self._windows.get(key)
            if window is None or self._is_expired(window, now):
                window = _ClientWindow(window_start=now, count=1)
                self._windows[key] = window
                self._windows.move_to_end(key)
                self._evict_if_over_capacity_locked()
                return self._allowed(window)

            self._windows.move_to_end(key)
            if window.count < self._limit:
                window.count += 1
                return self._allowed(window)

            self._rejections += 1
            return self._blocked(window, now)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "tracked_keys": len(self._windows),
                "evictions": self._evictions,
                "rejections": self._rejections,
            }
