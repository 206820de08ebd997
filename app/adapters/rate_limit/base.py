"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the per-process store can later be replaced by a shared one (e.g., Redis).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission decision.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        remaining: Requests still admissible in the current window (0 when blocked).
        reset_at: UNIX epoch seconds at which the client's window expires.
        retry_after_seconds: Suggested wait in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Record one request for ``key`` and decide whether it is admitted.

        Args:
            key: Client identity (e.g., ``ip:203.0.113.7``).

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int]:
        """Return bookkeeping counters without exposing client keys."""
        raise NotImplementedError
