"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It selects the testing environment before any settings are imported and
provides an in-memory stand-in for the PostgreSQL adapter.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
# Never dialled: the fake database replaces the pool in app fixtures
os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/pastes_test")

from typing import Any, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.db.base import AbstractDatabase
from app.adapters.db.schema import SCHEMA_STATEMENTS
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.app_factory import create_app
from app.core.errors import DuplicateKeyAppError, ReferenceViolationAppError
from app.services.identity_service import SELECT_USER_EXISTS_SQL
from app.services.paste_service import (
    INSERT_ANONYMOUS_PASTE_SQL,
    INSERT_OWNED_PASTE_SQL,
    INSERT_USER_SQL,
    SELECT_PASTE_BY_ID_SQL,
    SELECT_PASTES_BY_OWNER_SQL,
    PasteService,
)


class FakeDatabase(AbstractDatabase):
    """Dict-backed database that understands exactly the service's statements.

    Enforces the same primary-key and foreign-key constraints as the real
    schema. Set ``fail_with`` to make every call raise that exception.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.pastes: dict[str, dict[str, Any]] = {}
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_with: Exception | None = None
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _insert_paste(self, paste_id: str, content: str, fmt: str, ts: Any, userid: str | None) -> None:
        if paste_id in self.pastes:
            raise DuplicateKeyAppError(code="duplicate_key", message="duplicate")
        if userid is not None and userid not in self.users:
            raise ReferenceViolationAppError(code="reference_violation", message="fk")
        self.pastes[paste_id] = {
            "id": paste_id,
            "content": content,
            "format": fmt,
            "timestamp": ts,
            "userid": userid,
        }

    async def execute(self, sql: str, *args: Any) -> None:
        self._maybe_fail()
        self.executed.append((sql, args))
        if sql == INSERT_USER_SQL:
            user_id, ts = args
            if user_id in self.users:
                raise DuplicateKeyAppError(code="duplicate_key", message="duplicate")
            self.users[user_id] = {"id": user_id, "timestamp": ts}
        elif sql == INSERT_ANONYMOUS_PASTE_SQL:
            self._insert_paste(*args, None)
        elif sql == INSERT_OWNED_PASTE_SQL:
            self._insert_paste(*args)
        elif sql not in SCHEMA_STATEMENTS:
            raise AssertionError(f"unexpected statement: {sql}")

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        self._maybe_fail()
        if sql == SELECT_USER_EXISTS_SQL:
            return {"?column?": 1} if args[0] in self.users else None
        if sql == SELECT_PASTE_BY_ID_SQL:
            row = self.pastes.get(args[0])
            return dict(row) if row else None
        raise AssertionError(f"unexpected query: {sql}")

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        self._maybe_fail()
        if sql == SELECT_PASTES_BY_OWNER_SQL:
            rows = [dict(r) for r in self.pastes.values() if r["userid"] == args[0]]
            return sorted(rows, key=lambda r: (r["timestamp"], r["id"]))
        raise AssertionError(f"unexpected query: {sql}")


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def paste_service(fake_db: FakeDatabase) -> PasteService:
    return PasteService(fake_db)


@pytest.fixture
def app(fake_db: FakeDatabase) -> FastAPI:
    """App wired to the fake store with a limiter loose enough not to interfere."""
    limiter = InMemorySlidingWindowRateLimiter(limit=1000, window_seconds=10)
    return create_app(database=fake_db, rate_limiter=limiter)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with the lifespan (connect + schema bootstrap) running."""
    with TestClient(app) as test_client:
        yield test_client
