"""PostgreSQL adapter built on an asyncpg connection pool.

The pool is opened during the application lifespan (see
``app/core/app_factory.py``) and closed on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Iterator
from urllib.parse import urlsplit

import asyncpg

from app.adapters.db.base import AbstractDatabase
from app.core.config import DatabaseSettings
from app.core.errors import DuplicateKeyAppError, ReferenceViolationAppError, StoreAppError

logger = logging.getLogger(__name__)

STORE_ERROR_MESSAGE = "The request could not be completed, ask devs to check the logs"


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Map driver/connectivity failures onto the StoreAppError hierarchy.

    The driver exception is chained as ``__cause__`` so exception handlers can
    log it; it never becomes part of the client-facing message.
    """

    try:
        yield
    except asyncpg.UniqueViolationError as exc:
        raise DuplicateKeyAppError(
            code="duplicate_key",
            message=STORE_ERROR_MESSAGE,
            details={"operation": operation},
        ) from exc
    except asyncpg.ForeignKeyViolationError as exc:
        raise ReferenceViolationAppError(
            code="reference_violation",
            message=STORE_ERROR_MESSAGE,
            details={"operation": operation},
        ) from exc
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
        raise StoreAppError(
            code="store_error",
            message=STORE_ERROR_MESSAGE,
            details={"operation": operation},
        ) from exc


def _describe_dsn(dsn: str) -> dict[str, Any]:
    """Return loggable connection facts (never user or password)."""

    parts = urlsplit(dsn)
    return {
        "db_host": parts.hostname,
        "db_port": parts.port,
        "db_name": parts.path.lstrip("/") or None,
    }


class PostgresDatabase(AbstractDatabase):
    """``AbstractDatabase`` backed by an asyncpg pool."""

    def __init__(
        self,
        *,
        dsn: str,
        min_size: int = 1,
        max_size: int = 5,
        command_timeout: float = 30.0,
    ) -> None:
        if not dsn.strip():
            raise ValueError("dsn must be a non-empty string")
        self._dsn = dsn.strip()
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    @classmethod
    def from_settings(cls, db_settings: DatabaseSettings) -> "PostgresDatabase":
        return cls(
            dsn=db_settings.url,
            min_size=db_settings.pool_min_size,
            max_size=db_settings.pool_max_size,
            command_timeout=db_settings.command_timeout_seconds,
        )

    async def connect(self) -> None:
        if self._pool is not None:
            return
        with _translate_errors("connect"):
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
        logger.info(
            "db.pool_opened",
            extra={**_describe_dsn(self._dsn), "pool_max_size": self._max_size},
        )

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("db.pool_closed")

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        with _translate_errors("fetch_one"):
            row = await self.pool().fetchrow(sql, *args)
        return dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        with _translate_errors("fetch_all"):
            rows = await self.pool().fetch(sql, *args)
        return [dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> None:
        with _translate_errors("execute"):
            await self.pool().execute(sql, *args)
