from __future__ import annotations

import logging
from typing import Any

from bridge_indexer.app.application.services.block_window import BlockRange
from bridge_indexer.app.config import settings
from bridge_indexer.app.infrastructure.db.engine import create_app_async_engine
from bridge_indexer.app.infrastructure.factories.collector_factory import collector_factory

logger = logging.getLogger(__name__)


async def dry_run_task(
    *,
    chain: str,
    from_block: int,
    to_block: int,
    backend: str = "sqlalchemy",
) -> list[dict[str, Any]]:
    """
    Task: run one scanner over a block window and return the token updates as JSON-ready dicts.

    Nothing is written to tokens or block_progress. Token metadata and
    contract instances are still stored as scanner side effects.
    """
    block_range = BlockRange(from_block=int(from_block), to_block=int(to_block))
    block_range.validate()

    chain_key = chain.strip().upper()
    if chain_key not in ("L1", "L2"):
        raise ValueError(f"Unsupported chain: {chain!r} (expected 'l1' or 'l2')")

    engine = create_app_async_engine()
    components = None
    try:
        components = await collector_factory(backend=backend, engine=engine, settings=settings)

        if chain_key == "L1":
            updates = await components.l1_scanner.get_allow_list_events(block_range.from_block, block_range.to_block)
            updates += await components.l1_scanner.get_registration_events(
                block_range.from_block, block_range.to_block
            )
        else:
            updates = await components.l2_scanner.get_registration_events(
                block_range.from_block, block_range.to_block
            )
    finally:
        if components is not None:
            await components.close()
        await engine.dispose()

    rows = [u.to_json_dict() for u in updates]
    logger.info("%s dry run over blocks %s-%s: %d updates", chain_key, block_range.from_block, block_range.to_block, len(rows))
    return rows
