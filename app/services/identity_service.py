"""Opaque identifier issuance and owner validation."""

from __future__ import annotations

import logging
import secrets

from app.adapters.db.base import AbstractDatabase
from app.core.errors import StoreAppError

logger = logging.getLogger(__name__)

ID_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
ID_LENGTH = 16

SELECT_USER_EXISTS_SQL = """
SELECT 1 FROM users
WHERE id = $1
"""


def generate_id() -> str:
    """Return a fresh 16-character id drawn uniformly from ``ID_ALPHABET``.

    Uniqueness is not checked here; the primary key is the arbiter and
    callers retry on collision.
    """

    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def is_well_formed(value: str | None) -> bool:
    """Check length and alphabet without touching the store."""

    return (
        isinstance(value, str)
        and len(value) == ID_LENGTH
        and all(ch in ID_ALPHABET for ch in value)
    )


class IdentityService:
    """Issues ids and answers whether a user id exists."""

    def __init__(self, database: AbstractDatabase) -> None:
        self._db = database

    def generate_id(self) -> str:
        return generate_id()

    async def validate_user(self, user_id: str | None) -> bool:
        """Return True only if ``user_id`` names an existing user.

        Fails closed: a store error is logged and reported as False, so the
        caller cannot tell "unknown user" from "store unavailable".

        Args:
            user_id: Candidate owner id.

        Returns:
            Whether the id is a known user.
        """

        if not is_well_formed(user_id):
            return False

        try:
            row = await self._db.fetch_one(SELECT_USER_EXISTS_SQL, user_id)
        except StoreAppError as exc:
            logger.warning(
                "identity.validation_failed",
                extra={
                    "reason": "store_error",
                    "error_code": exc.code,
                    "cause_type": type(exc.__cause__).__name__ if exc.__cause__ else None,
                },
            )
            return False

        return row is not None
