from __future__ import annotations

from functools import lru_cache
from typing import Iterator, Sequence

# Scalar field of BN254; every rollup value (address, class id, hash) lives in it.
BN254_FR_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# Poseidon2 instance used by the rollup: state width 4, x^5 S-box
WIDTH = 4
RATE = 3
SBOX_DEGREE = 5
ROUNDS_FULL = 8
ROUNDS_PARTIAL = 56
FIELD_BITS = 254

INTERNAL_MATRIX_DIAGONAL = (
    0x10DC6E9C006EA38B04B1E03B4BD9490C0D03F98929CA1D7FB56821FD19D3B6E7,
    0x0C28145B6A44DF3E0149B3D0A30B3BB599DF9756D4DD9B84A86B38CFB45A740B,
    0x00544B8338791518B2C7645A50392798B21F75BB60E3596170067D00141CAC15,
    0x222C01175718386F2E2E82EB122789E352E105A3B8FA852613BC534433EE428B,
)

# Bytes per field when hashing raw bytes; 31 bytes always fit below the modulus
BYTES_PER_FIELD = 31


def _grain_bits() -> Iterator[int]:
    """
    Grain LFSR in self-shrinking mode, seeded with the instance parameters.

    Seed layout (80 bits): field type (2), S-box type (4), field size (12),
    width (12), full rounds (10), partial rounds (10), then 30 ones.
    """
    seed = (
        f"{1:02b}{0:04b}{FIELD_BITS:012b}{WIDTH:012b}{ROUNDS_FULL:010b}{ROUNDS_PARTIAL:010b}" + "1" * 30
    )
    state = [int(b) for b in seed]

    def step() -> int:
        bit = state[62] ^ state[51] ^ state[38] ^ state[23] ^ state[13] ^ state[0]
        state.pop(0)
        state.append(bit)
        return bit

    for _ in range(160):
        step()

    while True:
        # Pairs (b1, b2): emit b2 only when b1 is set
        keep, bit = step(), step()
        if keep:
            yield bit


@lru_cache(maxsize=1)
def round_constants() -> tuple[int, ...]:
    """
    Flat list of round constants in consumption order.

    Full rounds take WIDTH constants each, partial rounds take one.
    """
    bits = _grain_bits()
    count = ROUNDS_FULL * WIDTH + ROUNDS_PARTIAL
    constants: list[int] = []
    while len(constants) < count:
        value = 0
        for _ in range(FIELD_BITS):
            value = (value << 1) | next(bits)
        # Rejection sampling
        if value < BN254_FR_MODULUS:
            constants.append(value)
    return tuple(constants)


def _external_layer(s: list[int]) -> list[int]:
    # M4 = [[5,7,1,3],[4,6,1,1],[1,3,5,7],[1,1,4,6]]
    p = BN254_FR_MODULUS
    t0 = s[0] + s[1]
    t1 = s[2] + s[3]
    t2 = 2 * s[1] + t1
    t3 = 2 * s[3] + t0
    t4 = 4 * t1 + t3
    t5 = 4 * t0 + t2
    t6 = t3 + t5
    t7 = t2 + t4
    return [t6 % p, t5 % p, t7 % p, t4 % p]


def _internal_layer(s: list[int]) -> list[int]:
    p = BN254_FR_MODULUS
    total = sum(s)
    return [(x * d + total) % p for x, d in zip(s, INTERNAL_MATRIX_DIAGONAL)]


def _sbox(x: int) -> int:
    return pow(x, SBOX_DEGREE, BN254_FR_MODULUS)


def permute(state: Sequence[int]) -> list[int]:
    if len(state) != WIDTH:
        raise ValueError(f"Poseidon2 state has {WIDTH} elements, got {len(state)}")

    p = BN254_FR_MODULUS
    rc = iter(round_constants())
    s = _external_layer([x % p for x in state])

    half_full = ROUNDS_FULL // 2
    for _ in range(half_full):
        s = _external_layer([_sbox(x + next(rc)) for x in s])

    for _ in range(ROUNDS_PARTIAL):
        s[0] = _sbox(s[0] + next(rc))
        s = _internal_layer(s)

    for _ in range(half_full):
        s = _external_layer([_sbox(x + next(rc)) for x in s])

    return s


def poseidon2_hash(inputs: Sequence[int]) -> int:
    """
    Sponge hash with rate 3 and capacity 1.

    The capacity element starts as len(inputs) << 64. Every rate-sized chunk
    (the last one possibly short, an empty input still permutes once) is
    added to the state and followed by a permutation; the output is the
    first state element.
    """
    p = BN254_FR_MODULUS
    state = [0, 0, 0, (len(inputs) << 64) % p]

    for offset in range(0, max(len(inputs), 1), RATE):
        for i, value in enumerate(inputs[offset : offset + RATE]):
            state[i] = (state[i] + value) % p
        state = permute(state)

    return state[0]


def poseidon2_hash_bytes(data: bytes) -> int:
    """Hash raw bytes as 31-byte little-endian field chunks."""
    fields = [
        int.from_bytes(data[i : i + BYTES_PER_FIELD], "little")
        for i in range(0, len(data), BYTES_PER_FIELD)
    ]
    return poseidon2_hash(fields)
