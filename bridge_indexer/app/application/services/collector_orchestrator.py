from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from bridge_indexer.app.application.services.block_window import BlockRange, next_block_window
from bridge_indexer.app.application.services.task_group import run_all_or_cancel
from bridge_indexer.app.domain.models import Chain
from bridge_indexer.app.domain.ports.out import (
    BlockProgressStore,
    L1TokenScanner,
    L2TokenScanner,
    TokensRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainScanConfig:
    start_block: int
    chunk_size: int
    force_start_block: int | None = None


@dataclass(frozen=True)
class CollectorConfig:
    l1: ChainScanConfig
    l2: ChainScanConfig
    polling_interval_seconds: float = 30.0


class CollectorOrchestrator:
    """
    Drives both scanners window by window.

    Per chain and cycle: read cursor -> read head -> compute window -> scan ->
    upsert updates -> advance cursor. A window is never requested before the
    previous one is persisted and its cursor advanced.

    With a forced start block (backfill mode) the first window of that chain
    starts there, and `run` returns once both chains are caught up.
    """

    def __init__(
        self,
        *,
        l1_scanner: L1TokenScanner,
        l2_scanner: L2TokenScanner,
        progress_store: BlockProgressStore,
        tokens_repository: TokensRepository,
        config: CollectorConfig,
    ) -> None:
        self._l1 = l1_scanner
        self._l2 = l2_scanner
        self._progress = progress_store
        self._tokens = tokens_repository
        self._config = config

        self._force_start: dict[Chain, int | None] = {
            "L1": config.l1.force_start_block,
            "L2": config.l2.force_start_block,
        }
        self._backfill_mode = any(v is not None for v in self._force_start.values())

        for chain, block in self._force_start.items():
            if block is not None:
                logger.info("Backfill mode enabled for %s: forcing start from block %s", chain, block)

    @property
    def backfill_mode(self) -> bool:
        return self._backfill_mode

    async def run(self, stop_event: asyncio.Event) -> None:
        logger.info("Starting collector (backfill_mode=%s)", self._backfill_mode)

        while not stop_event.is_set():
            caught_up = await self.poll_once()

            if self._backfill_mode and caught_up:
                logger.info("Backfill complete - caught up with both chains. Exiting.")
                return

            if not caught_up:
                logger.info("Still catching up, polling again immediately")
                continue

            interval = self._config.polling_interval_seconds
            logger.info("Caught up with both chains. Waiting %.1fs before next poll", interval)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Stop requested, collector stopped")

    async def poll_once(self) -> bool:
        """
        One cycle over both chains. Returns True when both are caught up.

        Both chains always finish their cycle; the first error is re-raised
        afterwards.
        """
        results = await asyncio.gather(self._poll_l1(), self._poll_l2(), return_exceptions=True)

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            for extra in errors[1:]:
                logger.error("Additional collector error in the same cycle: %r", extra)
            raise errors[0]

        l1_caught_up, l2_caught_up = results
        logger.debug("Polling complete. L1 caught up: %s, L2 caught up: %s", l1_caught_up, l2_caught_up)
        return bool(l1_caught_up and l2_caught_up)

    async def _poll_l1(self) -> bool:
        window, head = await self._next_window("L1", self._l1, self._config.l1)
        if window is None:
            return True

        logger.info("Scanning L1 blocks %s to %s (current: %s)", window.from_block, window.to_block, head)
        allow_list_updates, registrations = await run_all_or_cancel(
            self._l1.get_allow_list_events(window.from_block, window.to_block),
            self._l1.get_registration_events(window.from_block, window.to_block),
        )

        # Allow-list rows first, then registrations
        if allow_list_updates:
            logger.info("Found %d L1 token allow list events", len(allow_list_updates))
            await self._tokens.upsert_token_updates(allow_list_updates)
        if registrations:
            logger.info("Found %d L1 token registrations", len(registrations))
            await self._tokens.upsert_token_updates(registrations)

        await self._progress.update_last_scanned_block("L1", window.to_block)
        return window.to_block >= head

    async def _poll_l2(self) -> bool:
        window, head = await self._next_window("L2", self._l2, self._config.l2)
        if window is None:
            return True

        logger.info("Scanning L2 blocks %s to %s (current: %s)", window.from_block, window.to_block, head)
        registrations = await self._l2.get_registration_events(window.from_block, window.to_block)

        if registrations:
            logger.info("Found %d L2 token registrations", len(registrations))
            await self._tokens.upsert_token_updates(registrations)

        await self._progress.update_last_scanned_block("L2", window.to_block)
        return window.to_block >= head

    async def _next_window(
        self,
        chain: Chain,
        scanner: L1TokenScanner | L2TokenScanner,
        cfg: ChainScanConfig,
    ) -> tuple[BlockRange | None, int]:
        last_scanned = await self._progress.get_last_scanned_block(chain)
        head = await scanner.get_block_number()

        # A forced start is used once, then normal cursor logic resumes
        force_start = self._force_start[chain]
        self._force_start[chain] = None
        if force_start is not None:
            logger.info("Using forced %s start block: %s", chain, force_start)

        window = next_block_window(
            last_scanned_block=last_scanned,
            head_block=head,
            chunk_size=cfg.chunk_size,
            start_block=cfg.start_block,
            force_start_block=force_start,
        )
        if window is None:
            logger.debug("%s already caught up (last scanned %s, head %s)", chain, last_scanned, head)
        return window, head
