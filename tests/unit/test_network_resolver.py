"""Tests for resolving unconfigured L1 bridge addresses."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from bridge_indexer.app.domain.rollup import L1ContractAddresses
from bridge_indexer.app.infrastructure.factories.network_resolver import resolve_l1_bridge_addresses

PORTAL = "0x1111111111111111111111111111111111111111"
ALLOW_LIST = "0x2222222222222222222222222222222222222222"
INBOX = "0x3333333333333333333333333333333333333333"


def make_w3(allow_list: str) -> MagicMock:
    allow_list_fn = MagicMock(return_value=SimpleNamespace(call=AsyncMock(return_value=allow_list)))
    w3 = MagicMock()
    w3.eth.contract = MagicMock(return_value=SimpleNamespace(functions=SimpleNamespace(allowList=allow_list_fn)))
    return w3


class TestResolveL1BridgeAddresses:
    """Configured values win; missing ones come from the portal and the node."""

    @pytest.mark.asyncio
    async def test_configured_addresses_are_used(self):
        w3, node = make_w3(ALLOW_LIST), AsyncMock()

        resolved = await resolve_l1_bridge_addresses(
            w3=w3,
            node=node,
            portal_address=PORTAL,
            allow_list_address=ALLOW_LIST.upper().replace("0X", "0x"),
            inbox_address=INBOX,
        )

        assert (resolved.portal, resolved.allow_list, resolved.inbox) == (PORTAL, ALLOW_LIST, INBOX)
        w3.eth.contract.assert_not_called()
        node.get_l1_contract_addresses.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_addresses_are_resolved(self):
        w3 = make_w3("0x2222222222222222222222222222222222222222")
        node = AsyncMock()
        node.get_l1_contract_addresses = AsyncMock(return_value=L1ContractAddresses(inbox_address=INBOX))

        resolved = await resolve_l1_bridge_addresses(w3=w3, node=node, portal_address=PORTAL)

        assert resolved.allow_list == ALLOW_LIST
        assert resolved.inbox == INBOX
        node.get_l1_contract_addresses.assert_awaited_once()
