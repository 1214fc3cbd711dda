import pytest
from decimal import Decimal

from earnings.money import Money
from earnings.tiers import (
    COMMISSION_TIERS,
    CommissionTier,
    progression_tier_for,
    rate_for,
    tier_for,
    validate_commission_table,
)


class TestCommissionTiers:
    """Tests for the lifetime-earnings commission table."""

    @pytest.mark.parametrize("lifetime,expected", [
        ("0.00", "Bronze"),
        ("10000.00", "Bronze"),
        ("10000.01", "Silver"),
        ("50000.00", "Silver"),
        ("50000.01", "Gold"),
        ("150000.00", "Gold"),
        ("150000.01", "Platinum"),
        ("9999999.99", "Platinum"),
    ])
    def test_tier_boundaries(self, lifetime, expected):
        assert tier_for(Money.parse(lifetime)).name == expected

    def test_rates(self):
        rates = {tier.name: rate_for(tier) for tier in COMMISSION_TIERS}
        assert rates == {
            "Bronze": Decimal("1.25"),
            "Silver": Decimal("2.50"),
            "Gold": Decimal("3.75"),
            "Platinum": Decimal("5.00"),
        }

    def test_rate_is_monotonic_in_lifetime_earnings(self):
        samples = [Money(cents) for cents in range(0, 20_000_000, 137_731)]
        rates = [rate_for(tier_for(sample)) for sample in samples]
        assert rates == sorted(rates)

    def test_table_must_start_at_zero(self):
        with pytest.raises(ValueError):
            validate_commission_table((CommissionTier("Late", Money.parse("1.00"), Decimal("1")),))

    def test_table_must_ascend(self):
        table = (
            CommissionTier("A", Money.zero(), Decimal("1")),
            CommissionTier("B", Money.zero(), Decimal("2")),
        )
        with pytest.raises(ValueError):
            validate_commission_table(table)

    def test_higher_tier_cannot_pay_less(self):
        table = (
            CommissionTier("A", Money.zero(), Decimal("2")),
            CommissionTier("B", Money.parse("10.00"), Decimal("1")),
        )
        with pytest.raises(ValueError):
            validate_commission_table(table)


class TestProgressionTiers:
    """Monthly-sales progression tier, independent of the commission rate."""

    @pytest.mark.parametrize("month_sales,expected", [
        (0, "seed"),
        (10, "seed"),
        (11, "sprout"),
        (51, "growth"),
        (100, "growth"),
        (101, "bloom"),
        (251, "forest"),
        (10_000, "forest"),
    ])
    def test_progression_boundaries(self, month_sales, expected):
        assert progression_tier_for(month_sales).name == expected
