from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from bridge_indexer.app.domain.models import BlockProgress, Chain
from bridge_indexer.app.infrastructure.db.models.block_progress import BlockProgressDB
from bridge_indexer.app.infrastructure.db.upsert import dialect_insert

logger = logging.getLogger(__name__)

_TABLE = BlockProgressDB.__table__


class SqlAlchemyBlockProgressStore:
    """
    SQLAlchemy implementation of BlockProgressStore.

    Strategy:
    - Lazy initialization: the first read of a chain inserts a cursor at 0
      with ON CONFLICT DO NOTHING, so racing readers cannot create duplicates.
    - Updates are upserts on the unique chain column. Regressions are not
      rejected here; ordering is the orchestrator's responsibility.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_last_scanned_block(self, chain: Chain) -> int:
        select_sql = select(_TABLE.c.last_scanned_block).where(_TABLE.c.chain == chain).limit(1)

        async with self._engine.begin() as conn:
            result = await conn.execute(select_sql)
            value = result.scalar_one_or_none()
            if value is not None:
                return int(value)

            init_sql = (
                dialect_insert(self._engine, _TABLE)
                .values(
                    chain=chain,
                    last_scanned_block=0,
                    last_scan_timestamp=datetime.now(timezone.utc),
                )
                .on_conflict_do_nothing(index_elements=["chain"])
            )
            await conn.execute(init_sql)

            # Another writer may have won the insert race with a real cursor.
            result = await conn.execute(select_sql)
            value = result.scalar_one()

        logger.debug("Initialized %s block progress at block %s", chain, value)
        return int(value)

    async def update_last_scanned_block(self, chain: Chain, block_number: int) -> None:
        if block_number < 0:
            raise ValueError("Block numbers must be non-negative")

        now = datetime.now(timezone.utc)
        stmt = dialect_insert(self._engine, _TABLE).values(
            chain=chain,
            last_scanned_block=block_number,
            last_scan_timestamp=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["chain"],
            set_={
                "last_scanned_block": stmt.excluded.last_scanned_block,
                "last_scan_timestamp": stmt.excluded.last_scan_timestamp,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        async with self._engine.begin() as conn:
            await conn.execute(stmt)

        logger.debug("Updated %s last scanned block to %s", chain, block_number)

    async def get_progress(self, chain: Chain) -> BlockProgress | None:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(
                    _TABLE.c.chain,
                    _TABLE.c.last_scanned_block,
                    _TABLE.c.last_scan_timestamp,
                )
                .where(_TABLE.c.chain == chain)
                .limit(1)
            )
            row = result.one_or_none()

        if row is None:
            return None

        return BlockProgress(
            chain=row.chain,
            last_scanned_block=int(row.last_scanned_block),
            last_scan_timestamp=row.last_scan_timestamp,
        )
