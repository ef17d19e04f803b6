"""
Tests for the L1 scanner.

The web3 client is an AsyncMock whose get_logs answers per topic0, so the
scanner runs its real decoding and correlation logic.

Covers:
- Allow-list proposals vs resolutions
- Registered <-> MessageSent correlation by tx hash
- Uncorrelated registrations are skipped with a warning
- Malformed logs are skipped
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_abi import encode

from bridge_indexer.app.application.services.l1_scanner import L1Scanner, L1ScannerConfig
from bridge_indexer.app.domain.models import AllowListStatus, MetadataStatus, TokenUpdate
from bridge_indexer.app.infrastructure.decoders.l1.events import L1EventDecoder

PORTAL = "0x1111111111111111111111111111111111111111"
ALLOW_LIST = "0x2222222222222222222222222222222222222222"
INBOX = "0x3333333333333333333333333333333333333333"

TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
SENDER = "0x742d35cc6634c0532925a3b844bc9e7595f0beb0"

TX_A = b"\xaa" * 32
TX_B = b"\xbb" * 32
MESSAGE_HASH = b"\x11" * 32

DECODER = L1EventDecoder()


def _address_topic(address: str) -> bytes:
    return encode(["address"], [bytes.fromhex(address[2:])])


def status_log(status: int, tx_hash: bytes = TX_A, token: str = TOKEN) -> dict:
    return {
        "topics": [
            DECODER.status_updated_topic0,
            _address_topic(token),
            encode(["uint8"], [status]),
            encode(["uint8"], [0]),
        ],
        "data": b"",
        "transactionHash": tx_hash,
        "blockNumber": 10,
    }


def registered_log(tx_hash: bytes = TX_A, token: str = TOKEN, block: int = 12) -> dict:
    return {
        "topics": [DECODER.registered_topic0, _address_topic(token)],
        "data": encode(["bytes32", "uint256"], [b"\x01" * 32, 0]),
        "transactionHash": tx_hash,
        "blockNumber": block,
    }


def message_sent_log(tx_hash: bytes = TX_A, l2_block: int = 77, index: int = 4, message_hash: bytes = MESSAGE_HASH) -> dict:
    return {
        "topics": [DECODER.message_sent_topic0, encode(["uint256"], [l2_block]), message_hash],
        "data": encode(["uint256", "bytes16"], [index, b"\x00" * 16]),
        "transactionHash": tx_hash,
        "blockNumber": 12,
    }


def make_w3(logs_by_topic0: dict) -> MagicMock:
    async def get_logs(filter_params):
        topic0 = bytes.fromhex(filter_params["topics"][0][2:])
        return logs_by_topic0.get(topic0, [])

    w3 = MagicMock()
    w3.eth.get_logs = AsyncMock(side_effect=get_logs)
    w3.eth.get_transaction_receipt = AsyncMock(return_value={"from": SENDER})
    return w3


@pytest.fixture
def metadata_service():
    service = AsyncMock()
    service.ensure_token_metadata = AsyncMock(return_value=MetadataStatus.FETCHED)
    return service


def make_scanner(w3, metadata_service) -> L1Scanner:
    return L1Scanner(
        w3=w3,
        config=L1ScannerConfig(portal_address=PORTAL, allow_list_address=ALLOW_LIST, inbox_address=INBOX),
        metadata_service=metadata_service,
        decoder=DECODER,
    )


class TestAllowListEvents:
    """StatusUpdated -> proposal or resolution fields."""

    @pytest.mark.asyncio
    async def test_proposal(self, metadata_service):
        w3 = make_w3({DECODER.status_updated_topic0: [status_log(1)]})
        updates = await make_scanner(w3, metadata_service).get_allow_list_events(1, 100)

        assert updates == [
            TokenUpdate(
                l1_address=TOKEN,
                l1_allow_list_status=AllowListStatus.PROPOSED,
                l1_allow_list_proposal_tx="0x" + "aa" * 32,
                l1_allow_list_proposer=SENDER,
            )
        ]
        metadata_service.ensure_token_metadata.assert_awaited_once_with(TOKEN)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code, status", [(2, AllowListStatus.ACCEPTED), (3, AllowListStatus.REJECTED)])
    async def test_resolution(self, metadata_service, code, status):
        w3 = make_w3({DECODER.status_updated_topic0: [status_log(code, tx_hash=TX_B)]})
        (update,) = await make_scanner(w3, metadata_service).get_allow_list_events(1, 100)

        assert update.l1_allow_list_status is status
        assert update.l1_allow_list_resolution_tx == "0x" + "bb" * 32
        assert update.l1_allow_list_approver == SENDER
        assert update.l1_allow_list_proposal_tx is None
        assert update.l1_allow_list_proposer is None

    @pytest.mark.asyncio
    async def test_filter_uses_allow_list_address_and_window(self, metadata_service):
        w3 = make_w3({})
        await make_scanner(w3, metadata_service).get_allow_list_events(5, 9)

        (filter_params,) = w3.eth.get_logs.await_args.args
        assert filter_params["address"].lower() == ALLOW_LIST
        assert filter_params["fromBlock"] == 5
        assert filter_params["toBlock"] == 9

    @pytest.mark.asyncio
    async def test_unknown_status_is_skipped(self, metadata_service, caplog):
        w3 = make_w3({DECODER.status_updated_topic0: [status_log(0), status_log(9)]})

        with caplog.at_level(logging.WARNING):
            updates = await make_scanner(w3, metadata_service).get_allow_list_events(1, 100)

        assert updates == []
        metadata_service.ensure_token_metadata.assert_not_awaited()
        assert "UNKNOWN" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_log_is_skipped(self, metadata_service, caplog):
        bad = status_log(1)
        bad["topics"] = bad["topics"][:2]
        w3 = make_w3({DECODER.status_updated_topic0: [bad, status_log(1, tx_hash=TX_B)]})

        with caplog.at_level(logging.WARNING):
            updates = await make_scanner(w3, metadata_service).get_allow_list_events(1, 100)

        assert [u.l1_allow_list_proposal_tx for u in updates] == ["0x" + "bb" * 32]
        assert "0x" + "aa" * 32 in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_window(self, metadata_service):
        with pytest.raises(ValueError):
            await make_scanner(make_w3({}), metadata_service).get_allow_list_events(10, 5)


class TestRegistrationEvents:
    """Registered logs correlated with inbox MessageSent logs of the same tx."""

    @pytest.mark.asyncio
    async def test_correlated_registration(self, metadata_service):
        w3 = make_w3(
            {
                DECODER.registered_topic0: [registered_log()],
                DECODER.message_sent_topic0: [message_sent_log()],
            }
        )

        updates = await make_scanner(w3, metadata_service).get_registration_events(1, 100)

        assert updates == [
            TokenUpdate(
                l1_address=TOKEN,
                l1_registration_block=12,
                l1_registration_tx="0x" + "aa" * 32,
                l1_portal_registration_submitter=SENDER,
                l2_registration_available_block=77,
                l1_to_l2_message_hash="0x" + "11" * 32,
                l1_to_l2_message_index=4,
            )
        ]
        metadata_service.ensure_token_metadata.assert_awaited_once_with(TOKEN)

    @pytest.mark.asyncio
    async def test_uncorrelated_registration_is_skipped(self, metadata_service, caplog):
        w3 = make_w3(
            {
                DECODER.registered_topic0: [registered_log(tx_hash=TX_A)],
                DECODER.message_sent_topic0: [message_sent_log(tx_hash=TX_B)],
            }
        )

        with caplog.at_level(logging.WARNING):
            updates = await make_scanner(w3, metadata_service).get_registration_events(1, 100)

        assert updates == []
        assert "No correlated inbox log" in caplog.text
        assert "0x" + "aa" * 32 in caplog.text
        metadata_service.ensure_token_metadata.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_message_sent_wins(self, metadata_service, caplog):
        w3 = make_w3(
            {
                DECODER.registered_topic0: [registered_log()],
                DECODER.message_sent_topic0: [
                    message_sent_log(index=4),
                    message_sent_log(index=5, message_hash=b"\x12" * 32),
                ],
            }
        )

        with caplog.at_level(logging.WARNING):
            (update,) = await make_scanner(w3, metadata_service).get_registration_events(1, 100)

        assert update.l1_to_l2_message_index == 4
        assert "Multiple MessageSent" in caplog.text

    @pytest.mark.asyncio
    async def test_portal_and_inbox_queried_concurrently_over_same_window(self, metadata_service):
        w3 = make_w3({})
        await make_scanner(w3, metadata_service).get_registration_events(3, 8)

        addresses = sorted(call.args[0]["address"].lower() for call in w3.eth.get_logs.await_args_list)
        assert addresses == sorted([PORTAL, INBOX])
        assert all(
            (call.args[0]["fromBlock"], call.args[0]["toBlock"]) == (3, 8)
            for call in w3.eth.get_logs.await_args_list
        )


class _FakeEth:
    """web3's eth.block_number is an awaitable property."""

    def __init__(self, head: int) -> None:
        self._head = head

    @property
    def block_number(self):
        async def _get():
            return self._head

        return _get()


@pytest.mark.asyncio
async def test_get_block_number():
    w3 = MagicMock()
    w3.eth = _FakeEth(1234)

    assert await make_scanner(w3, AsyncMock()).get_block_number() == 1234
