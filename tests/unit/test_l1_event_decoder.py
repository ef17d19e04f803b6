"""
Tests for the typed L1 event decoder.

Logs are built with eth_abi the way a node would return them: indexed
arguments as 32-byte topics, the rest ABI-encoded in data.
"""

from eth_abi import encode
from eth_utils import keccak

from bridge_indexer.app.infrastructure.decoders.l1.events import (
    L1EventDecoder,
    MessageSent,
    Registered,
    StatusUpdated,
)
from bridge_indexer.app.infrastructure.decoders.unrecognized import UnrecognizedLog

TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


def _address_topic(address: str) -> bytes:
    return encode(["address"], [bytes.fromhex(address[2:])])


def _uint_topic(value: int) -> bytes:
    return encode(["uint256"], [value])


class TestTopics:
    """topic0 values are keccak of the canonical signatures."""

    def test_topic0_values(self):
        decoder = L1EventDecoder()
        assert decoder.status_updated_topic0 == keccak(text="StatusUpdated(address,uint8,uint8)")
        assert decoder.registered_topic0 == keccak(text="Registered(address,bytes32,uint256)")
        assert decoder.message_sent_topic0 == keccak(text="MessageSent(uint256,uint256,bytes32,bytes16)")


class TestDecode:
    """Dispatch on topic0 into typed variants."""

    def test_status_updated(self):
        decoder = L1EventDecoder()
        event = decoder.decode(
            topics=[
                decoder.status_updated_topic0,
                _address_topic(TOKEN),
                encode(["uint8"], [2]),
                encode(["uint8"], [1]),
            ],
            data=b"",
        )

        assert event == StatusUpdated(token_address=TOKEN, status_code=2, previous_status_code=1)

    def test_registered(self):
        decoder = L1EventDecoder()
        leaf = b"\x42" * 32
        event = decoder.decode(
            topics=[decoder.registered_topic0, _address_topic(TOKEN)],
            data=encode(["bytes32", "uint256"], [leaf, 7]),
        )

        assert event == Registered(token_address=TOKEN, leaf=leaf, index=7)

    def test_message_sent(self):
        decoder = L1EventDecoder()
        message_hash = b"\x11" * 32
        event = decoder.decode(
            topics=[decoder.message_sent_topic0, _uint_topic(120), message_hash],
            data=encode(["uint256", "bytes16"], [3, b"\x22" * 16]),
        )

        assert event == MessageSent(l2_block_number=120, index=3, message_hash=message_hash)

    def test_unknown_topic0(self):
        decoder = L1EventDecoder()
        event = decoder.decode(topics=[keccak(text="Transfer(address,address,uint256)")], data=b"")

        assert isinstance(event, UnrecognizedLog)
        assert "unknown topic0" in event.reason

    def test_no_topics(self):
        assert isinstance(L1EventDecoder().decode(topics=[], data=b""), UnrecognizedLog)

    def test_missing_indexed_topic(self):
        decoder = L1EventDecoder()
        event = decoder.decode(
            topics=[decoder.status_updated_topic0, _address_topic(TOKEN)],
            data=b"",
        )

        assert isinstance(event, UnrecognizedLog)

    def test_truncated_data(self):
        decoder = L1EventDecoder()
        event = decoder.decode(
            topics=[decoder.registered_topic0, _address_topic(TOKEN)],
            data=b"\x00" * 16,
        )

        assert isinstance(event, UnrecognizedLog)
        assert "Registered" in event.reason
