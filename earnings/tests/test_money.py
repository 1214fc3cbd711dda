"""
Unit tests for the Money type

Tests cover:
1. Parsing from strings, decimals, ints and JSON floats
2. Rejection of negative, over-precise and non-numeric amounts
3. Half-up percentage rounding
4. Ordering and serialization
"""

import pytest
from decimal import Decimal

from pydantic import BaseModel

from earnings.errors import InvalidAmountError
from earnings.money import MAX_CENTS, Money


class TestParsing:
    """Tests for converting external values into Money."""

    def test_parse_decimal_string(self):
        money = Money.parse("12.50")
        assert money.cents == 1250
        assert money.amount == Decimal("12.50")
        assert str(money) == "12.50"

    def test_parse_whole_units(self):
        assert Money.parse(500).cents == 50000
        assert str(Money.parse("500")) == "500.00"

    def test_parse_json_float_uses_repr(self):
        assert Money.parse(0.1).cents == 10
        assert Money.parse(19.99).cents == 1999

    def test_parse_is_identity_for_money(self):
        money = Money(42)
        assert Money.parse(money) is money

    @pytest.mark.parametrize("value", ["-0.01", Decimal("-5"), -1, -0.5])
    def test_negative_amounts_rejected(self, value):
        with pytest.raises(InvalidAmountError):
            Money.parse(value)

    @pytest.mark.parametrize("value", ["12.345", Decimal("0.001")])
    def test_more_than_two_decimals_rejected(self, value):
        with pytest.raises(InvalidAmountError):
            Money.parse(value)

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", None, True])
    def test_non_amounts_rejected(self, value):
        with pytest.raises(InvalidAmountError):
            Money.parse(value)

    def test_overflow_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money(MAX_CENTS + 1)
        with pytest.raises(InvalidAmountError):
            Money.parse("1e40")


class TestArithmetic:
    """Tests for addition, subtraction and percentages."""

    def test_add_and_subtract(self):
        total = Money.parse("100.10") + Money.parse("0.90")
        assert total == Money.parse("101.00")
        assert total - Money.parse("1.00") == Money.parse("100.00")

    def test_subtracting_below_zero_fails(self):
        with pytest.raises(InvalidAmountError):
            Money.parse("1.00") - Money.parse("1.01")

    def test_percent_of(self):
        assert Money.parse("1000.00").percent_of(Decimal("1.25")) == Money.parse("12.50")
        assert Money.parse("1000.00").percent_of(Decimal("0")) == Money.zero()

    def test_percent_of_rounds_half_up(self):
        # 0.5 cent rounds away from zero
        assert Money.parse("0.20").percent_of(Decimal("2.5")) == Money(1)
        assert Money.parse("0.19").percent_of(Decimal("2.5")) == Money(0)

    def test_negative_percentage_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money.parse("10.00").percent_of(Decimal("-1"))

    def test_ordering(self):
        assert Money.parse("1.00") < Money.parse("1.01")
        assert Money.parse("2.00") >= Money.parse("2.00")
        assert sorted([Money(3), Money(1), Money(2)]) == [Money(1), Money(2), Money(3)]

    def test_zero_is_falsy(self):
        assert not Money.zero()
        assert Money(1)


class TestPydanticIntegration:
    """Money as a model field."""

    class Holder(BaseModel):
        amount: Money

    def test_validates_and_serializes_as_string(self):
        holder = self.Holder(amount="7.05")
        assert holder.amount == Money(705)
        assert holder.model_dump(mode="json") == {"amount": "7.05"}
        assert holder.model_dump()["amount"] == Money(705)

    def test_negative_field_value_raises_domain_error(self):
        with pytest.raises(InvalidAmountError):
            self.Holder(amount="-1.00")
