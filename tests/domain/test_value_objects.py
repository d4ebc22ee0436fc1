"""Unit tests for domain value objects."""

from decimal import Decimal

import pytest

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import Money, Quantity


# ── Money ────────────────────────────────────────────────────────────────────


class TestMoney:

    def test_creation_defaults_to_inr(self):
        m = Money(Decimal("10.50"))
        assert m.amount == Decimal("10.50")
        assert m.currency == "INR"

    def test_of_factory_from_string(self):
        assert Money.of("25.99").amount == Decimal("25.99")

    def test_of_factory_from_int(self):
        assert Money.of(10).amount == Decimal("10")

    def test_of_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid money amount"):
            Money.of("ten rupees")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(Decimal("-1"))

    def test_non_finite_rejected(self):
        with pytest.raises(ValidationError, match="finite"):
            Money.of("Infinity")

    def test_float_rejected(self):
        with pytest.raises(ValidationError, match="Decimal"):
            Money(10.5)

    def test_addition(self):
        assert Money.of("10") + Money.of("5.50") == Money.of("15.50")

    def test_multiplication_by_int(self):
        assert Money.of("7.50") * 3 == Money.of("22.50")

    def test_currency_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money(Decimal("10"), "INR") + Money(Decimal("5"), "USD")

    def test_str_formatting(self):
        assert str(Money.of("15")) == "INR 15.00"
        assert str(Money.of("9.5")) == "INR 9.50"

    def test_multiplication_rejects_non_int(self):
        with pytest.raises(TypeError):
            Money.of("7.50") * 1.5

    def test_minor_units(self):
        assert Money.of("124.98").to_minor_units() == 12498
        assert Money.of("0").to_minor_units() == 0

    def test_negative_zero_is_zero(self):
        assert Money(Decimal("-0")).amount == 0


class TestVariance:

    @pytest.mark.parametrize(
        "collected, expected, variance",
        [("100", "100", "0"), ("120", "100", "20"), ("80", "100", "-20")],
    )
    def test_signed_difference(self, collected, expected, variance):
        assert Money.of(collected).variance_from(Money.of(expected)) == Decimal(variance)


# ── Quantity ─────────────────────────────────────────────────────────────────


class TestQuantity:

    def test_positive_accepted(self):
        assert Quantity(3).value == 3

    @pytest.mark.parametrize("value", [0, -1])
    def test_non_positive_rejected(self, value):
        with pytest.raises(ValidationError, match="positive"):
            Quantity(value)

    @pytest.mark.parametrize("value", [1.5, "2", True])
    def test_non_integer_rejected(self, value):
        with pytest.raises(ValidationError, match="integer"):
            Quantity(value)
