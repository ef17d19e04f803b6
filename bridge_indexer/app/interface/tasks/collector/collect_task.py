from __future__ import annotations

import asyncio
import logging
import signal

from bridge_indexer.app.config import settings
from bridge_indexer.app.infrastructure.db.engine import create_app_async_engine
from bridge_indexer.app.infrastructure.factories.collector_factory import collector_factory

logger = logging.getLogger(__name__)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def collect_task(
    *,
    force_l1_start_block: int | None = None,
    force_l2_start_block: int | None = None,
    backend: str = "sqlalchemy",
) -> None:
    """
    Task: long-running dual-chain collector.

    - scans L1 (allow list + portal/inbox) and L2 (portal Register logs),
    - upserts reconciled rows into tokens, advances block_progress per chain,
    - SIGINT/SIGTERM stop the loop after the in-flight cycle.

    Forced start blocks (backfill mode) make the task return once both chains
    are caught up.
    """
    overrides = {
        k: v
        for k, v in {
            "force_l1_start_block": force_l1_start_block,
            "force_l2_start_block": force_l2_start_block,
        }.items()
        if v is not None
    }
    task_settings = settings.model_copy(update=overrides) if overrides else settings
    logger.info("Starting %s collector on network %s", task_settings.project_name, task_settings.network)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _request_stop(sig: signal.Signals) -> None:
        logger.info("Received %s, stopping after the current cycle", sig.name)
        stop_event.set()

    for sig in _STOP_SIGNALS:
        loop.add_signal_handler(sig, _request_stop, sig)

    engine = create_app_async_engine()
    components = None
    try:
        components = await collector_factory(backend=backend, engine=engine, settings=task_settings)
        await components.orchestrator.run(stop_event)
    finally:
        for sig in _STOP_SIGNALS:
            loop.remove_signal_handler(sig)
        if components is not None:
            await components.close()
        await engine.dispose()
