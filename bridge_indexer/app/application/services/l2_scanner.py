from __future__ import annotations

import logging
from dataclasses import dataclass

from bridge_indexer.app.application.services.block_window import BlockRange
from bridge_indexer.app.domain.addresses import normalize_l1_address, normalize_l2_address
from bridge_indexer.app.domain.errors import MissingChainDataError
from bridge_indexer.app.domain.models import TokenUpdate
from bridge_indexer.app.domain.ports.out import (
    RollupNodeClient,
    TokenInstanceRegistry,
    TokenMetadataEnsurer,
)
from bridge_indexer.app.domain.rollup import ExtendedPublicLog, L2Block, LogId
from bridge_indexer.app.infrastructure.decoders.aztec.register_decoder import (
    RegisterEvent,
    RegisterLogDecoder,
)
from bridge_indexer.app.infrastructure.decoders.unrecognized import UnrecognizedLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class L2ScannerConfig:
    portal_address: str


class L2Scanner:
    """
    Reads portal Register events from the rollup node.

    Public logs come without a tx hash; it is looked up through the block's
    tx effects at the log's (block, tx index) coordinates.
    """

    def __init__(
        self,
        *,
        node: RollupNodeClient,
        config: L2ScannerConfig,
        decoder: RegisterLogDecoder,
        metadata_service: TokenMetadataEnsurer,
        contract_registry: TokenInstanceRegistry,
    ) -> None:
        self._node = node
        self._portal_address = normalize_l2_address(config.portal_address)
        self._decoder = decoder
        self._metadata = metadata_service
        self._contract_registry = contract_registry

    async def get_block_number(self) -> int:
        return await self._node.get_block_number()

    async def get_registration_events(self, from_block: int, to_block: int) -> list[TokenUpdate]:
        BlockRange(from_block=from_block, to_block=to_block).validate()
        logger.debug(
            "Scanning L2 blocks %s to %s for Register events (portal=%s)",
            from_block,
            to_block,
            self._portal_address,
        )

        events = self._decode_register_events(await self._fetch_portal_logs(from_block, to_block))
        if events:
            logger.debug(
                "Found %d Register event(s) at blocks: %s",
                len(events),
                ", ".join(str(e.block_number) for e in events),
            )

        blocks: dict[int, L2Block] = {}
        updates: list[TokenUpdate] = []

        for event in events:
            tx_hash = await self._resolve_tx_hash(event, blocks)

            l1_address = normalize_l1_address(event.eth_token)
            l2_address = normalize_l2_address(event.aztec_token)

            await self._metadata.ensure_token_metadata(l1_address)
            metadata = await self._metadata.get_token_metadata(l1_address)

            if metadata is not None:
                try:
                    await self._contract_registry.store_token_instance(l2_address, self._portal_address, metadata)
                except Exception:
                    logger.warning(
                        "Failed to store contract instance for token registration l1=%s l2=%s",
                        l1_address,
                        l2_address,
                        exc_info=True,
                    )
            else:
                logger.warning(
                    "Token metadata not available for l1=%s l2=%s, skipping contract instance creation",
                    l1_address,
                    l2_address,
                )

            updates.append(
                TokenUpdate(
                    l1_address=l1_address,
                    l2_address=l2_address,
                    l2_registration_block=event.block_number,
                    l2_registration_tx_index=event.tx_index,
                    l2_registration_log_index=event.log_index,
                    l2_registration_tx=tx_hash,
                )
            )

        return updates

    async def _fetch_portal_logs(self, from_block: int, to_block: int) -> list[ExtendedPublicLog]:
        logs: list[ExtendedPublicLog] = []
        after_log: LogId | None = None

        while True:
            # Node filter's toBlock is exclusive
            page = await self._node.get_public_logs(
                from_block=from_block,
                to_block=to_block + 1,
                contract_address=self._portal_address,
                after_log=after_log,
            )
            logs.extend(page.logs)

            if not page.max_logs_hit or not page.logs:
                break
            after_log = page.logs[-1].id

        logger.debug("Rollup node returned %d logs for portal contract", len(logs))
        return logs

    def _decode_register_events(self, logs: list[ExtendedPublicLog]) -> list[RegisterEvent]:
        events: list[RegisterEvent] = []
        for log in logs:
            if not self._decoder.is_register_log(log):
                continue

            event = self._decoder.decode(log)
            if isinstance(event, UnrecognizedLog):
                logger.warning(
                    "Skipping malformed Register log at block=%s tx_index=%s log_index=%s: %s",
                    log.id.block_number,
                    log.id.tx_index,
                    log.id.log_index,
                    event.reason,
                )
                continue
            events.append(event)
        return events

    async def _resolve_tx_hash(self, event: RegisterEvent, blocks: dict[int, L2Block]) -> str:
        block = blocks.get(event.block_number)
        if block is None:
            block = await self._node.get_block(event.block_number)
            if block is None:
                raise MissingChainDataError(f"L2 block {event.block_number} not found")
            blocks[event.block_number] = block

        tx_effects = block.body.tx_effects
        if event.tx_index < 0 or event.tx_index >= len(tx_effects):
            raise MissingChainDataError(
                f"L2 tx index {event.tx_index} not found in block {event.block_number}"
            )
        return tx_effects[event.tx_index].tx_hash.lower()
