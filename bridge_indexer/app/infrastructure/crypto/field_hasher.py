from __future__ import annotations

from enum import IntEnum
from typing import Sequence

from bridge_indexer.app.domain.ports.out import FieldHasher
from bridge_indexer.app.infrastructure.crypto.poseidon2 import (
    BN254_FR_MODULUS,
    poseidon2_hash,
    poseidon2_hash_bytes,
)


class GeneratorIndex(IntEnum):
    """Domain separators of the rollup's protocol hashes."""

    FUNCTION_LEAF = 11
    CONSTRUCTOR = 13
    CONTRACT_ADDRESS_V1 = 15
    CONTRACT_LEAF = 16
    PARTIAL_ADDRESS = 27
    FUNCTION_ARGS = 44
    PUBLIC_KEYS_HASH = 52


def to_field(value: int) -> int:
    if value < 0:
        raise ValueError(f"Field elements are non-negative, got {value}")
    return value % BN254_FR_MODULUS


def field_to_hex(value: int) -> str:
    return "0x%064x" % value


def field_from_hex(value: str) -> int:
    return to_field(int(value, 16))


class Poseidon2FieldHasher:
    """
    Poseidon2 over BN254, the hash the rollup uses for selectors and addresses.

    A separator, when given, is prepended as the first input.
    """

    def hash(self, inputs: Sequence[int], *, separator: int | None = None) -> int:
        words = [to_field(int(x)) for x in inputs]
        if separator is not None:
            words.insert(0, to_field(int(separator)))
        return poseidon2_hash(words)

    def hash_bytes(self, data: bytes) -> int:
        return poseidon2_hash_bytes(data)


def selector_from_signature(signature: str, hasher: FieldHasher) -> int:
    """4-byte selector: low 4 bytes of the field hash of the signature."""
    return hasher.hash_bytes(signature.encode("utf-8")) & 0xFFFFFFFF
