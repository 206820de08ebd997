from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check.

    Does not touch the database. Reports limiter bookkeeping counters so
    operators can watch tracked-client growth and evictions.
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    body: dict = {"status": "ok"}
    if limiter is not None:
        body["rate_limiter"] = limiter.stats()
    return body
