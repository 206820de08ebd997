"""Relational store adapters.

Services talk to ``AbstractDatabase``; the asyncpg implementation translates
driver failures into ``StoreAppError`` subclasses so nothing above this
package depends on asyncpg.
"""

from app.adapters.db.base import AbstractDatabase
from app.adapters.db.postgres import PostgresDatabase
from app.adapters.db.schema import bootstrap_schema

__all__ = ["AbstractDatabase", "PostgresDatabase", "bootstrap_schema"]
