from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from web3 import AsyncWeb3, Web3

from bridge_indexer.app.domain.addresses import normalize_l1_address
from bridge_indexer.app.domain.ports.out import RollupNodeClient

logger = logging.getLogger(__name__)

# .../bridge_indexer/app/infrastructure/factories -> .../bridge_indexer/app
_PORTAL_ABI_PATH = Path(__file__).resolve().parents[2] / "registry" / "abi" / "ITokenPortal.json"


@dataclass(frozen=True)
class L1BridgeAddresses:
    portal: str
    allow_list: str
    inbox: str


async def resolve_l1_bridge_addresses(
    *,
    w3: AsyncWeb3,
    node: RollupNodeClient,
    portal_address: str,
    allow_list_address: str | None = None,
    inbox_address: str | None = None,
) -> L1BridgeAddresses:
    """
    Fill in the L1 contract addresses that were not configured.

    - allow list: read from the portal's allowList()
    - inbox: taken from the rollup node's L1 contract addresses
    """
    portal = normalize_l1_address(portal_address)

    if allow_list_address:
        allow_list = normalize_l1_address(allow_list_address)
    else:
        abi = json.loads(_PORTAL_ABI_PATH.read_text(encoding="utf-8"))
        contract = w3.eth.contract(address=Web3.to_checksum_address(portal), abi=abi)
        allow_list = normalize_l1_address(await contract.functions.allowList().call())
        logger.info("Resolved L1 allow list address from portal: %s", allow_list)

    if inbox_address:
        inbox = normalize_l1_address(inbox_address)
    else:
        l1_addresses = await node.get_l1_contract_addresses()
        inbox = normalize_l1_address(l1_addresses.inbox_address)
        logger.info("Resolved L1 inbox address from rollup node: %s", inbox)

    return L1BridgeAddresses(portal=portal, allow_list=allow_list, inbox=inbox)
