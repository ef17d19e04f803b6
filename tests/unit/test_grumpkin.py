"""Tests for Grumpkin point arithmetic."""

import pytest

from bridge_indexer.app.infrastructure.crypto import grumpkin
from bridge_indexer.app.infrastructure.crypto.grumpkin import GENERATOR, GROUP_ORDER, INFINITY, add, mul


class TestCurve:
    """y^2 = x^3 - 17 over the BN254 scalar field."""

    def test_generator_is_on_curve(self):
        assert GENERATOR.is_on_curve()
        assert GENERATOR.x == 1

    def test_off_curve_point(self):
        assert grumpkin.AffinePoint(1, 1).is_on_curve() is False

    def test_group_order(self):
        assert mul(GENERATOR, GROUP_ORDER).is_infinite
        assert mul(GENERATOR, GROUP_ORDER - 1) == -GENERATOR


class TestArithmetic:
    def test_infinity_is_identity(self):
        assert add(GENERATOR, INFINITY) == GENERATOR
        assert add(INFINITY, GENERATOR) == GENERATOR

    def test_point_plus_negation(self):
        assert add(GENERATOR, -GENERATOR).is_infinite

    def test_doubling_matches_scalar_two(self):
        assert add(GENERATOR, GENERATOR) == mul(GENERATOR, 2)

    def test_scalar_multiplication_is_linear(self):
        a, b = 123456789, 987654321
        assert add(mul(GENERATOR, a), mul(GENERATOR, b)) == mul(GENERATOR, a + b)

    def test_results_stay_on_curve(self):
        for k in (3, 2**200 + 17, GROUP_ORDER - 5):
            assert mul(GENERATOR, k).is_on_curve()

    def test_zero_scalar(self):
        assert mul(GENERATOR, 0) == INFINITY

    def test_negative_scalar_rejected(self):
        with pytest.raises(ValueError):
            mul(GENERATOR, -1)
