"""
Creator Earnings Ledger and Payout Workflow

This module provides:
- Fixed-point Money held as integer cents
- Lifetime-earnings commission tiers and monthly progression tiers
- Exactly-once commission posting with base and ad-bonus components
- Payout lifecycle: pending → approved → processing → completed / rejected / failed
- Per-creator serialized balance mutations with an audit journal
"""

from .models import (
    AccountSummary,
    CommissionEvent,
    CommitResult,
    DestinationDetails,
    EntryType,
    LedgerEntry,
    PayoutDecision,
    PayoutRequest,
    PayoutState,
    PostingStatus,
)
from .money import Money
from .service import EarningsService

__all__ = [
    "AccountSummary",
    "CommissionEvent",
    "CommitResult",
    "DestinationDetails",
    "EntryType",
    "LedgerEntry",
    "Money",
    "PayoutDecision",
    "PayoutRequest",
    "PayoutState",
    "PostingStatus",
    "EarningsService",
]
