from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from web3 import AsyncWeb3, Web3

from bridge_indexer.app.application.services.block_window import BlockRange
from bridge_indexer.app.application.services.task_group import run_all_or_cancel
from bridge_indexer.app.domain.addresses import normalize_l1_address
from bridge_indexer.app.domain.models import AllowListStatus, TokenUpdate
from bridge_indexer.app.domain.ports.out import TokenMetadataEnsurer
from bridge_indexer.app.infrastructure.decoders.l1.events import (
    L1Event,
    L1EventDecoder,
    MessageSent,
    Registered,
    StatusUpdated,
)
from bridge_indexer.app.infrastructure.decoders.unrecognized import UnrecognizedLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class L1ScannerConfig:
    portal_address: str
    allow_list_address: str
    inbox_address: str


def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower() if value.startswith("0x") else "0x" + value.lower()
    return "0x" + bytes(value).hex()


class L1Scanner:
    """
    Reads bridge activity from the base chain.

    Scans are read/decode only (plus metadata side effects); persisting the
    returned updates is the caller's job.
    """

    def __init__(
        self,
        *,
        w3: AsyncWeb3,
        config: L1ScannerConfig,
        metadata_service: TokenMetadataEnsurer,
        decoder: L1EventDecoder | None = None,
    ) -> None:
        self._w3 = w3
        self._config = config
        self._metadata = metadata_service
        self._decoder = decoder or L1EventDecoder()

    async def get_block_number(self) -> int:
        return int(await self._w3.eth.block_number)

    async def get_allow_list_events(self, from_block: int, to_block: int) -> list[TokenUpdate]:
        BlockRange(from_block=from_block, to_block=to_block).validate()
        logger.debug("Scanning L1 blocks %s to %s for StatusUpdated events", from_block, to_block)

        logs = await self._get_logs(
            address=self._config.allow_list_address,
            topic0=self._decoder.status_updated_topic0,
            from_block=from_block,
            to_block=to_block,
        )

        updates: list[TokenUpdate] = []
        for log in logs:
            tx_hash = _hex(log["transactionHash"])
            event = self._decode(log)

            if not isinstance(event, StatusUpdated):
                logger.warning(
                    "Skipping invalid allow list StatusUpdated log tx=%s blocks=%s-%s: %s",
                    tx_hash,
                    from_block,
                    to_block,
                    event.reason if isinstance(event, UnrecognizedLog) else type(event).__name__,
                )
                continue

            try:
                status = AllowListStatus.from_code(event.status_code)
            except ValueError as exc:
                logger.warning("Skipping StatusUpdated log tx=%s: %s", tx_hash, exc)
                continue

            if status is AllowListStatus.UNKNOWN:
                logger.warning("Skipping StatusUpdated log tx=%s with UNKNOWN status", tx_hash)
                continue

            l1_address = normalize_l1_address(event.token_address)
            await self._metadata.ensure_token_metadata(l1_address)
            submitter = await self._get_tx_sender(log["transactionHash"])

            if status.is_resolution:
                updates.append(
                    TokenUpdate(
                        l1_address=l1_address,
                        l1_allow_list_status=status,
                        l1_allow_list_resolution_tx=tx_hash,
                        l1_allow_list_approver=submitter,
                    )
                )
            else:
                updates.append(
                    TokenUpdate(
                        l1_address=l1_address,
                        l1_allow_list_status=status,
                        l1_allow_list_proposal_tx=tx_hash,
                        l1_allow_list_proposer=submitter,
                    )
                )

        return updates

    async def get_registration_events(self, from_block: int, to_block: int) -> list[TokenUpdate]:
        BlockRange(from_block=from_block, to_block=to_block).validate()
        logger.debug("Scanning L1 blocks %s to %s for Registered events", from_block, to_block)

        portal_logs, inbox_logs = await run_all_or_cancel(
            self._get_logs(
                address=self._config.portal_address,
                topic0=self._decoder.registered_topic0,
                from_block=from_block,
                to_block=to_block,
            ),
            self._get_logs(
                address=self._config.inbox_address,
                topic0=self._decoder.message_sent_topic0,
                from_block=from_block,
                to_block=to_block,
            ),
        )

        messages_by_tx: dict[str, MessageSent] = {}
        for log in inbox_logs:
            tx_hash = _hex(log["transactionHash"])
            event = self._decode(log)
            if not isinstance(event, MessageSent):
                logger.warning("Skipping malformed inbox MessageSent log tx=%s", tx_hash)
                continue
            if tx_hash in messages_by_tx:
                logger.warning("Multiple MessageSent logs in tx=%s; using the first one", tx_hash)
                continue
            messages_by_tx[tx_hash] = event

        updates: list[TokenUpdate] = []
        for log in portal_logs:
            tx_hash = _hex(log["transactionHash"])

            message = messages_by_tx.get(tx_hash)
            if message is None:
                logger.warning(
                    "No correlated inbox log found for portal registration in tx %s (blocks %s-%s)",
                    tx_hash,
                    from_block,
                    to_block,
                )
                continue

            event = self._decode(log)
            if not isinstance(event, Registered):
                logger.warning("Skipping malformed portal Registered log tx=%s", tx_hash)
                continue

            l1_address = normalize_l1_address(event.token_address)
            await self._metadata.ensure_token_metadata(l1_address)

            updates.append(
                TokenUpdate(
                    l1_address=l1_address,
                    l1_registration_block=int(log["blockNumber"]),
                    l1_registration_tx=tx_hash,
                    l1_portal_registration_submitter=await self._get_tx_sender(log["transactionHash"]),
                    l2_registration_available_block=message.l2_block_number,
                    l1_to_l2_message_hash=_hex(message.message_hash),
                    l1_to_l2_message_index=message.index,
                )
            )

        return updates

    # ---------------------------------------------------------------------
    # RPC helpers
    # ---------------------------------------------------------------------

    async def _get_logs(
        self,
        *,
        address: str,
        topic0: bytes,
        from_block: int,
        to_block: int,
    ) -> Sequence[Mapping[str, Any]]:
        return await self._w3.eth.get_logs(
            {
                "address": Web3.to_checksum_address(address),
                "topics": [_hex(topic0)],
                "fromBlock": from_block,
                "toBlock": to_block,
            }
        )

    async def _get_tx_sender(self, tx_hash: Any) -> str:
        receipt = await self._w3.eth.get_transaction_receipt(tx_hash)
        return normalize_l1_address(receipt["from"])

    def _decode(self, log: Mapping[str, Any]) -> L1Event:
        return self._decoder.decode(topics=list(log["topics"]), data=bytes(log["data"]))
