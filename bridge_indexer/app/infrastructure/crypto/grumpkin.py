from __future__ import annotations

from dataclasses import dataclass

from bridge_indexer.app.infrastructure.crypto.poseidon2 import BN254_FR_MODULUS

# Grumpkin: y^2 = x^3 - 17 over the BN254 scalar field
FIELD_MODULUS = BN254_FR_MODULUS
CURVE_B = FIELD_MODULUS - 17

# Group order (the BN254 base field modulus)
GROUP_ORDER = 21888242871839275222246405745257275088696311157297823662689037894645226208583


@dataclass(frozen=True)
class AffinePoint:
    x: int
    y: int
    is_infinite: bool = False

    def is_on_curve(self) -> bool:
        if self.is_infinite:
            return True
        p = FIELD_MODULUS
        return (self.y * self.y - (self.x * self.x * self.x + CURVE_B)) % p == 0

    def __neg__(self) -> AffinePoint:
        if self.is_infinite:
            return self
        return AffinePoint(self.x, (-self.y) % FIELD_MODULUS)


INFINITY = AffinePoint(0, 0, is_infinite=True)

GENERATOR = AffinePoint(1, 0x0000000000000002CF135E7506A45D632D270D45F1181294833FC48D823F272C)


def add(a: AffinePoint, b: AffinePoint) -> AffinePoint:
    if a.is_infinite:
        return b
    if b.is_infinite:
        return a

    p = FIELD_MODULUS
    if a.x == b.x:
        if (a.y + b.y) % p == 0:
            return INFINITY
        # Doubling (a == b); curve has a = 0
        slope = 3 * a.x * a.x * pow(2 * a.y, -1, p) % p
    else:
        slope = (b.y - a.y) * pow(b.x - a.x, -1, p) % p

    x = (slope * slope - a.x - b.x) % p
    y = (slope * (a.x - x) - a.y) % p
    return AffinePoint(x, y)


def mul(point: AffinePoint, scalar: int) -> AffinePoint:
    """Double-and-add."""
    if scalar < 0:
        raise ValueError(f"Scalar must be non-negative, got {scalar}")
    k = scalar
    result = INFINITY
    addend = point
    while k:
        if k & 1:
            result = add(result, addend)
        addend = add(addend, addend)
        k >>= 1
    return result
