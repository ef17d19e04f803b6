from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

from bridge_indexer.app.infrastructure.decoders.abi_event_decoder import AbiEventDecoder
from bridge_indexer.app.infrastructure.decoders.unrecognized import UnrecognizedLog

# .../bridge_indexer/app/infrastructure/decoders/l1 -> .../bridge_indexer/app
DEFAULT_ABI_DIR = Path(__file__).resolve().parents[3] / "registry" / "abi"


@dataclass(frozen=True)
class StatusUpdated:
    token_address: str
    status_code: int
    previous_status_code: int


@dataclass(frozen=True)
class Registered:
    token_address: str
    leaf: bytes
    index: int


@dataclass(frozen=True)
class MessageSent:
    l2_block_number: int
    index: int
    message_hash: bytes


L1Event = Union[StatusUpdated, Registered, MessageSent, UnrecognizedLog]


class L1EventDecoder:
    """
    Decodes the three base-chain bridge events into typed variants.

    - IAllowList.StatusUpdated(address indexed addr, uint8 indexed status, uint8 indexed prev)
    - ITokenPortal.Registered(address indexed token, bytes32 leaf, uint256 index)
    - IInbox.MessageSent(uint256 indexed l2BlockNumber, uint256 index, bytes32 indexed hash, bytes16 rollingHash)

    Dispatch is on topic0; anything else comes back as UnrecognizedLog.
    """

    def __init__(self, *, abi_dir: Path = DEFAULT_ABI_DIR) -> None:
        self._status_updated = AbiEventDecoder(abi_path=abi_dir / "IAllowList.json", event_name="StatusUpdated")
        self._registered = AbiEventDecoder(abi_path=abi_dir / "ITokenPortal.json", event_name="Registered")
        self._message_sent = AbiEventDecoder(abi_path=abi_dir / "IInbox.json", event_name="MessageSent")

        self._by_topic0 = {
            d.topic0: d for d in (self._status_updated, self._registered, self._message_sent)
        }

    @property
    def status_updated_topic0(self) -> bytes:
        return self._status_updated.topic0

    @property
    def registered_topic0(self) -> bytes:
        return self._registered.topic0

    @property
    def message_sent_topic0(self) -> bytes:
        return self._message_sent.topic0

    def decode(self, *, topics: Sequence[bytes], data: bytes) -> L1Event:
        if not topics:
            return UnrecognizedLog(reason="log has no topics")

        decoder = self._by_topic0.get(bytes(topics[0]))
        if decoder is None:
            return UnrecognizedLog(reason=f"unknown topic0 0x{bytes(topics[0]).hex()}")

        values = decoder.decode(topics=topics, data=data)
        if values is None:
            return UnrecognizedLog(reason=f"malformed {decoder.event_name} log")

        if decoder is self._status_updated:
            return StatusUpdated(
                token_address=values["addr"],
                status_code=values["status"],
                previous_status_code=values["prev"],
            )
        if decoder is self._registered:
            return Registered(
                token_address=values["token"],
                leaf=values["leaf"],
                index=values["index"],
            )
        return MessageSent(
            l2_block_number=values["l2BlockNumber"],
            index=values["index"],
            message_hash=values["hash"],
        )
