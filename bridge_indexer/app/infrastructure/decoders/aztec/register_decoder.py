from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from bridge_indexer.app.domain.ports.out import FieldHasher
from bridge_indexer.app.domain.rollup import ExtendedPublicLog
from bridge_indexer.app.infrastructure.crypto.field_hasher import selector_from_signature
from bridge_indexer.app.infrastructure.decoders.unrecognized import UnrecognizedLog

# Portal.Register { eth_token: EthAddress, aztec_token: AztecAddress }
REGISTER_EVENT_SIGNATURE = "Register((Field),(Field))"

# eth_token, aztec_token, selector
_REGISTER_EMITTED_LENGTH = 3

_MAX_ETH_ADDRESS = 2**160


def register_event_selector(hasher: FieldHasher) -> int:
    return selector_from_signature(REGISTER_EVENT_SIGNATURE, hasher)


@dataclass(frozen=True)
class RegisterEvent:
    eth_token: str
    aztec_token: str
    block_number: int
    tx_index: int
    log_index: int


L2Event = Union[RegisterEvent, UnrecognizedLog]


class RegisterLogDecoder:
    """
    Decoder for the portal's Register public log.

    A public log carries its payload fields followed by the event selector as
    the last emitted field. Register emits [eth_token, aztec_token, selector].
    """

    def __init__(self, *, event_selector: int) -> None:
        self._selector = event_selector

    @property
    def event_selector(self) -> int:
        return self._selector

    def is_register_log(self, log: ExtendedPublicLog) -> bool:
        emitted = log.log.emitted_fields
        return bool(emitted) and emitted[-1] == self._selector

    def decode(self, log: ExtendedPublicLog) -> L2Event:
        if not self.is_register_log(log):
            return UnrecognizedLog(reason="last emitted field is not the Register selector")

        emitted = log.log.emitted_fields
        if len(emitted) != _REGISTER_EMITTED_LENGTH:
            return UnrecognizedLog(
                reason=f"Register log has {len(emitted)} emitted fields, expected {_REGISTER_EMITTED_LENGTH}"
            )

        eth_token, aztec_token = emitted[0], emitted[1]
        if eth_token >= _MAX_ETH_ADDRESS:
            return UnrecognizedLog(reason=f"eth_token does not fit in 20 bytes: {hex(eth_token)}")

        return RegisterEvent(
            eth_token="0x%040x" % eth_token,
            aztec_token="0x%064x" % aztec_token,
            block_number=log.id.block_number,
            tx_index=log.id.tx_index,
            log_index=log.id.log_index,
        )
