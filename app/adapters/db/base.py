"""Database access interface.

SQL parameter style follows asyncpg: positional placeholders ``$1, $2, ...``.
Values are always passed separately from the statement text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AbstractDatabase(ABC):
    """Minimal async query interface used by the services.

    Implementations raise ``StoreAppError`` (or a subclass) for every store
    failure: ``DuplicateKeyAppError`` for primary-key collisions and
    ``ReferenceViolationAppError`` for foreign-key violations.
    """

    async def connect(self) -> None:
        """Open underlying resources. Called once on application startup."""

    async def close(self) -> None:
        """Release underlying resources. Called once on application shutdown."""

    @abstractmethod
    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """Run a query and return the first row as a dict (or None)."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """Run a query and return all rows as dicts."""
        raise NotImplementedError

    @abstractmethod
    async def execute(self, sql: str, *args: Any) -> None:
        """Run a statement (INSERT/DDL). No result returned."""
        raise NotImplementedError
