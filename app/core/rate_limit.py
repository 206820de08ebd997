"""Rate limiting middleware.

This module wires the rate limiting adapter into the HTTP layer. Admission is
decided before routing, so every path (including unknown ones) consumes budget
and a rejected request never reaches a handler or the store.

Strategy:
- Sliding window per client IP (``ip:<host>``).
- Behind a trusted proxy, the first ``X-Forwarded-For`` hop can be used instead.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.config import AppSettings, settings
from app.core.errors import RateLimitExceededAppError
from app.core.exception_handlers import build_error_response

logger = logging.getLogger(__name__)


def build_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Create the process-wide limiter from configuration.

    Args:
        app_settings: Optional settings; defaults to global settings.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    cfg = app_settings or settings.app
    return InMemorySlidingWindowRateLimiter(
        limit=cfg.rate_limit_requests,
        window_seconds=cfg.rate_limit_window_seconds,
        max_keys=cfg.rate_limit_max_keys,
        sweep_interval_seconds=cfg.rate_limit_sweep_interval_seconds,
    )


def client_key(request: Request) -> str:
    """Build the limiter key for the current request."""

    if settings.app.rate_limit_trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _throttle_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "Retry-After": str(result.retry_after_seconds or 1),
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """Consume one unit of the client's budget; answer 429 when it is spent.

    The limiter is read from ``request.app.state.rate_limiter`` so every app
    instance owns its own state.
    """

    if not settings.app.rate_limit_enabled:
        return await call_next(request)

    limiter: AbstractRateLimiter = request.app.state.rate_limiter
    key = client_key(request)
    result = limiter.consume(key)

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": _hash_limiter_key(key),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return await call_next(request)

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": _hash_limiter_key(key),
            "limit": result.limit,
            "retry_after_s": result.retry_after_seconds,
            "request_path": request.url.path,
        },
    )

    exc = RateLimitExceededAppError(
        code="rate_limit_exceeded",
        message="You're being rate limited. Try again later",
        details={"limit": result.limit, "retry_after": result.retry_after_seconds or 1},
    )
    headers = _throttle_headers(result) if settings.app.rate_limit_include_headers else None
    return build_error_response(exc, 429, headers=headers)
