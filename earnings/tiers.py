"""
Commission and progression tier tables.

Both tables are frozen configuration: the commission tier sets the base rate
from a creator's lifetime earnings, the progression tier is a reporting badge
derived from the number of referred sales this month and never changes a rate.
"""

from dataclasses import dataclass
from decimal import Decimal

from .money import Money


@dataclass(frozen=True)
class CommissionTier:
    name: str
    min_lifetime_threshold: Money
    base_rate_percent: Decimal


@dataclass(frozen=True)
class ProgressionTier:
    name: str
    min_month_sales: int


COMMISSION_TIERS: tuple[CommissionTier, ...] = (
    CommissionTier("Bronze", Money.parse("0.00"), Decimal("1.25")),
    CommissionTier("Silver", Money.parse("10000.01"), Decimal("2.50")),
    CommissionTier("Gold", Money.parse("50000.01"), Decimal("3.75")),
    CommissionTier("Platinum", Money.parse("150000.01"), Decimal("5.00")),
)

PROGRESSION_TIERS: tuple[ProgressionTier, ...] = (
    ProgressionTier("seed", 0),
    ProgressionTier("sprout", 11),
    ProgressionTier("growth", 51),
    ProgressionTier("bloom", 101),
    ProgressionTier("forest", 251),
)


def validate_commission_table(table: tuple[CommissionTier, ...]) -> None:
    if not table:
        raise ValueError("Commission tier table is empty")
    if table[0].min_lifetime_threshold != Money.zero():
        raise ValueError("Lowest commission tier must start at 0.00")
    for lower, upper in zip(table, table[1:]):
        if upper.min_lifetime_threshold <= lower.min_lifetime_threshold:
            raise ValueError(f"Tier {upper.name} does not start above {lower.name}")
        if upper.base_rate_percent < lower.base_rate_percent:
            raise ValueError(f"Tier {upper.name} pays less than {lower.name}")


def tier_for(lifetime_earned: Money, table: tuple[CommissionTier, ...] = COMMISSION_TIERS) -> CommissionTier:
    for tier in reversed(table):
        if lifetime_earned >= tier.min_lifetime_threshold:
            return tier
    # validate_commission_table guarantees a zero floor
    return table[0]


def rate_for(tier: CommissionTier) -> Decimal:
    return tier.base_rate_percent


def progression_tier_for(month_sales: int) -> ProgressionTier:
    for tier in reversed(PROGRESSION_TIERS):
        if month_sales >= tier.min_month_sales:
            return tier
    return PROGRESSION_TIERS[0]


validate_commission_table(COMMISSION_TIERS)
