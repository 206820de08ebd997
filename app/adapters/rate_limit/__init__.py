"""Rate limiting adapters.

The service starts with an in-process sliding-window limiter; the abstract
interface keeps the HTTP layer unchanged if state moves to a shared store.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter

__all__ = ["AbstractRateLimiter", "InMemorySlidingWindowRateLimiter", "RateLimitResult"]
