from __future__ import annotations

import re

from eth_utils import is_checksum_address, is_checksum_formatted_address, is_hex_address

from bridge_indexer.app.domain.errors import InvalidAddressError

# 0x + 64 hex chars (one BN254 field element)
_L2_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

L1_ZERO_ADDRESS = "0x" + "0" * 40
L2_ZERO_ADDRESS = "0x" + "0" * 64


def is_l1_address(address: object) -> bool:
    return (
        isinstance(address, str)
        and len(address) == 42
        and address.startswith("0x")
        and is_hex_address(address)
        # Mixed case must carry a valid EIP-55 checksum
        and not (is_checksum_formatted_address(address) and not is_checksum_address(address))
    )


def is_l2_address(address: object) -> bool:
    return isinstance(address, str) and _L2_ADDRESS_RE.match(address) is not None


def normalize_l1_address(address: str) -> str:
    """
    Canonical form of a base-chain address: 0x-prefixed, 40 hex chars, lowercase.

    Mixed-case input must carry a valid EIP-55 checksum; all-lower and
    all-upper input is accepted as is.
    """
    if not is_l1_address(address):
        raise InvalidAddressError(f"Invalid L1 address: {address!r}")
    return address.lower()


def normalize_l2_address(address: str) -> str:
    """Canonical form of a rollup address: 0x-prefixed, 64 hex chars, lowercase."""
    if not is_l2_address(address):
        raise InvalidAddressError(f"Invalid L2 address: {address!r}")
    return address.lower()
