from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from bridge_indexer.app.domain.models import TokenMetadata, TokenUpdate
from bridge_indexer.app.infrastructure.db.models.tokens import TokensDB
from bridge_indexer.app.infrastructure.db.upsert import dialect_insert

logger = logging.getLogger(__name__)

_TABLE = TokensDB.__table__


class SqlAlchemyTokensRepository:
    """
    Repository adapter for the tokens table.

    Strategy:
    - Metadata is written fill-if-null: UPDATE ... SET col = COALESCE(col, :value),
      so a value written by another path is never clobbered.
    - Scanner updates are field-level upserts (INSERT ... ON CONFLICT DO UPDATE)
      keyed by l1_address, or by l2_address for an update without an L1 address.
      Only the columns carried by the update are touched.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_token_metadata(self, l1_address: str) -> dict[str, Any] | None:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(_TABLE.c.symbol, _TABLE.c.name, _TABLE.c.decimals)
                .where(_TABLE.c.l1_address == l1_address)
                .limit(1)
            )
            row = result.mappings().one_or_none()

        return dict(row) if row is not None else None

    async def store_fetched_metadata(self, l1_address: str, metadata: TokenMetadata) -> None:
        insert_sql = (
            dialect_insert(self._engine, _TABLE)
            .values(l1_address=l1_address)
            .on_conflict_do_nothing(index_elements=["l1_address"])
        )
        fill_sql = (
            update(_TABLE)
            .where(_TABLE.c.l1_address == l1_address)
            .values(
                symbol=func.coalesce(_TABLE.c.symbol, metadata.symbol),
                name=func.coalesce(_TABLE.c.name, metadata.name),
                decimals=func.coalesce(_TABLE.c.decimals, metadata.decimals),
                updated_at=datetime.now(timezone.utc),
            )
        )

        async with self._engine.begin() as conn:
            await conn.execute(insert_sql)
            await conn.execute(fill_sql)

    async def upsert_token_updates(self, updates: Sequence[TokenUpdate]) -> int:
        stored = 0

        async with self._engine.begin() as conn:
            for token_update in updates:
                changes = token_update.changes()

                if token_update.l1_address:
                    key = "l1_address"
                elif token_update.l2_address:
                    key = "l2_address"
                else:
                    logger.warning("Skipping token update with no address: %s", changes)
                    continue

                stmt = dialect_insert(self._engine, _TABLE).values(
                    **changes,
                    updated_at=datetime.now(timezone.utc),
                )
                set_ = {name: stmt.excluded[name] for name in changes if name != key}
                set_["updated_at"] = stmt.excluded.updated_at
                stmt = stmt.on_conflict_do_update(index_elements=[key], set_=set_)

                await conn.execute(stmt)
                stored += 1

        logger.debug("Upserted %s token updates", stored)
        return stored
