from __future__ import annotations

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine


def dialect_insert(engine: AsyncEngine, table: Table) -> postgresql.Insert | sqlite.Insert:
    """
    INSERT construct that supports ON CONFLICT for the engine's dialect.

    Production runs on PostgreSQL; SQLite shares the same ON CONFLICT grammar
    and backs the repository tests.
    """
    name = engine.dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise ValueError(f"Unsupported dialect for upserts: {name!r}")
