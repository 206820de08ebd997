"""Schema bootstrap for the users/pastes tables."""

from __future__ import annotations

import logging

from app.adapters.db.base import AbstractDatabase

logger = logging.getLogger(__name__)

CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id CHARACTER(16) PRIMARY KEY,
    timestamp TIMESTAMP NOT NULL
)
"""

CREATE_PASTES_TABLE = """
CREATE TABLE IF NOT EXISTS pastes (
    id CHARACTER(16) PRIMARY KEY,
    content TEXT NOT NULL,
    format VARCHAR(64) NOT NULL,
    timestamp TIMESTAMP NOT NULL,
    userid CHARACTER(16) REFERENCES users(id)
)
"""

CREATE_PASTES_USERID_INDEX = """
CREATE INDEX IF NOT EXISTS pastes_userid_idx ON pastes (userid)
"""

SCHEMA_STATEMENTS = (
    CREATE_USERS_TABLE,
    CREATE_PASTES_TABLE,
    CREATE_PASTES_USERID_INDEX,
)


async def bootstrap_schema(database: AbstractDatabase) -> None:
    """Create missing tables and indexes. Safe to run on every startup."""

    for statement in SCHEMA_STATEMENTS:
        await database.execute(statement)
    logger.info("db.schema_ready", extra={"statements": len(SCHEMA_STATEMENTS)})
