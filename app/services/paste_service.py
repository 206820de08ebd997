"""Paste and user persistence with ownership enforcement.

This service owns every write to the store. It handles:
- Id issuance with a bounded retry when a fresh id collides with an existing one
- Owner validation before linked writes and before owner-scoped reads
- Mapping empty result sets to ``NotFoundAppError``
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from app.adapters.db.base import AbstractDatabase
from app.core.errors import (
    AuthorizationAppError,
    DuplicateKeyAppError,
    NotFoundAppError,
    ReferenceViolationAppError,
    StoreAppError,
)
from app.schemas.paste import PasteResponse
from app.services.identity_service import IdentityService

logger = logging.getLogger(__name__)

DEFAULT_ID_MAX_ATTEMPTS = 5

INSERT_USER_SQL = """
INSERT INTO users (id, timestamp)
VALUES ($1, $2)
"""

INSERT_ANONYMOUS_PASTE_SQL = """
INSERT INTO pastes (id, content, format, timestamp)
VALUES ($1, $2, $3, $4)
"""

INSERT_OWNED_PASTE_SQL = """
INSERT INTO pastes (id, content, format, timestamp, userid)
VALUES ($1, $2, $3, $4, $5)
"""

SELECT_PASTE_BY_ID_SQL = """
SELECT id, content, format, timestamp, userid
FROM pastes
WHERE id = $1
"""

SELECT_PASTES_BY_OWNER_SQL = """
SELECT id, content, format, timestamp, userid
FROM pastes
WHERE userid = $1
ORDER BY timestamp, id
"""


def _utcnow() -> datetime:
    # TIMESTAMP columns are timezone-naive; values are stored as UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_paste(row: dict[str, Any]) -> PasteResponse:
    # CHAR(16) blank-pads shorter ids written by other clients.
    return PasteResponse(
        id=row["id"].strip(),
        content=row["content"],
        format=row["format"],
        timestamp=row["timestamp"],
        userid=row["userid"].strip() if row.get("userid") else None,
    )


class PasteService:
    """Create and read users and pastes.

    Attributes:
        identity: Id issuer and owner validator.
        id_max_attempts: Fresh ids tried per insert before giving up.
    """

    def __init__(
        self,
        database: AbstractDatabase,
        identity: IdentityService | None = None,
        *,
        id_max_attempts: int = DEFAULT_ID_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if id_max_attempts < 1:
            raise ValueError("id_max_attempts must be >= 1")
        self._db = database
        self.identity = identity or IdentityService(database)
        self.id_max_attempts = id_max_attempts
        self._clock = clock

    async def _insert_with_fresh_id(
        self,
        entity: str,
        insert: Callable[[str], Awaitable[None]],
    ) -> str:
        """Run ``insert`` with new ids until one does not collide.

        Args:
            entity: "user" or "paste", for logs and error details.
            insert: Coroutine factory performing the insert for a given id.

        Returns:
            The id that was written.

        Raises:
            StoreAppError: On any store failure, or when every attempt collided.
        """

        for attempt in range(1, self.id_max_attempts + 1):
            new_id = self.identity.generate_id()
            try:
                await insert(new_id)
            except DuplicateKeyAppError:
                logger.warning(
                    "id.collision",
                    extra={"entity": entity, "attempt": attempt, "max_attempts": self.id_max_attempts},
                )
                continue
            return new_id

        raise StoreAppError(
            code="id_generation_exhausted",
            message=f"Couldn't create {entity}, ask devs to check the logs",
            details={"operation": f"create_{entity}", "attempts": self.id_max_attempts},
        )

    async def create_user(self) -> str:
        """Issue and persist a new user id."""

        async def insert(user_id: str) -> None:
            await self._db.execute(INSERT_USER_SQL, user_id, self._clock())

        user_id = await self._insert_with_fresh_id("user", insert)
        logger.info("user.created")
        return user_id

    async def create_paste(self, content: str, format: str, owner_id: str | None = None) -> str:
        """Persist a paste, linked to ``owner_id`` when one is given.

        Args:
            content: Paste body.
            format: Content label (at most 64 characters).
            owner_id: Optional owner; empty string counts as anonymous.

        Returns:
            The new paste id.

        Raises:
            AuthorizationAppError: If ``owner_id`` is not a known user. No row
                is written.
            StoreAppError: On any other store failure.
        """

        timestamp = self._clock()

        if not owner_id:
            async def insert(paste_id: str) -> None:
                await self._db.execute(INSERT_ANONYMOUS_PASTE_SQL, paste_id, content, format, timestamp)

            paste_id = await self._insert_with_fresh_id("paste", insert)
            logger.info("paste.created", extra={"owned": False, "format": format})
            return paste_id

        if not await self.identity.validate_user(owner_id):
            raise _unauthorized_paste()

        async def insert_owned(paste_id: str) -> None:
            await self._db.execute(
                INSERT_OWNED_PASTE_SQL, paste_id, content, format, timestamp, owner_id
            )

        try:
            paste_id = await self._insert_with_fresh_id("paste", insert_owned)
        except ReferenceViolationAppError as exc:
            # Owner disappeared between validation and insert.
            raise _unauthorized_paste() from exc

        logger.info("paste.created", extra={"owned": True, "format": format})
        return paste_id

    async def get_paste_by_id(self, paste_id: str) -> PasteResponse:
        """Return one paste.

        Raises:
            NotFoundAppError: If no paste has this id.
            StoreAppError: On store failure.
        """

        row = await self._db.fetch_one(SELECT_PASTE_BY_ID_SQL, paste_id)
        if row is None:
            raise NotFoundAppError(
                code="paste_not_found",
                message=f"No paste with id {paste_id} found",
            )
        return _to_paste(row)

    async def get_pastes_by_owner(self, owner_id: str) -> list[PasteResponse]:
        """Return every paste owned by ``owner_id``, oldest first.

        Raises:
            AuthorizationAppError: If ``owner_id`` is not a known user.
            NotFoundAppError: If the user owns no pastes.
            StoreAppError: On store failure.
        """

        if not await self.identity.validate_user(owner_id):
            raise AuthorizationAppError(
                code="unauthorized_owner",
                message="You are not authorized to read this profile",
            )

        rows = await self._db.fetch_all(SELECT_PASTES_BY_OWNER_SQL, owner_id)
        if not rows:
            raise NotFoundAppError(
                code="pastes_not_found",
                message=f"No pastes for user {owner_id} found",
            )
        return [_to_paste(row) for row in rows]


def _unauthorized_paste() -> AuthorizationAppError:
    return AuthorizationAppError(
        code="unauthorized_owner",
        message="You are not authorized to make this paste.",
    )
