from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from .money import Money


class EntryType(str, Enum):
    CREDIT = "CREDIT"
    LOCK = "LOCK"
    RELEASE = "RELEASE"
    WITHDRAWAL = "WITHDRAWAL"


class PostingStatus(str, Enum):
    POSTED = "POSTED"
    ALREADY_POSTED = "ALREADY_POSTED"


class PayoutState(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


class PayoutDecision(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    PROCESS = "PROCESS"
    COMPLETE = "COMPLETE"
    FAIL = "FAIL"


OPEN_STATES = frozenset({PayoutState.PENDING, PayoutState.APPROVED, PayoutState.PROCESSING})
TERMINAL_STATES = frozenset({PayoutState.COMPLETED, PayoutState.REJECTED, PayoutState.FAILED})


class CommissionEvent(BaseModel):
    event_id: str = Field(..., min_length=1, description="Stable per originating order; used for deduplication")
    creator_id: str = Field(..., min_length=1)
    qualifying_amount: Money = Field(..., description="Commissionable order value, excluding shipping and tax")
    bonus_rate_percent: Decimal = Field(default=Decimal("0"), description="Dispensary-set ad bonus rate, 0-5%")

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "event_id": "order-8812",
            "creator_id": "creator-42",
            "qualifying_amount": "1000.00",
            "bonus_rate_percent": "2.5"
        }
    })


class DestinationDetails(BaseModel):
    bank_name: str = ""
    account_number: str = ""
    account_type: str = ""
    branch_code: str = ""
    account_holder_name: str = ""
    payment_method: str = "bank_transfer"

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("bank_name", "account_number", "account_type", "branch_code", "account_holder_name")

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED_FIELDS if not getattr(self, name).strip()]


class AccountSummary(BaseModel):
    creator_id: str
    currency: str
    available_balance: Money
    pending_balance: Money
    lifetime_earned: Money
    lifetime_withdrawn: Money
    lifetime_sales: Money
    tier: str
    tier_rate_percent: Decimal
    progression_tier: str
    month_sales: int
    total_conversions: int


class CommitResult(BaseModel):
    status: PostingStatus
    event_id: str
    creator_id: str
    tier: str
    base_rate_percent: Decimal
    bonus_rate_percent: Decimal
    base_component: Money
    bonus_component: Money
    total_credit: Money
    balances_after: AccountSummary
    posted_at: datetime
    message: str


class PayoutTransition(BaseModel):
    from_state: Optional[PayoutState] = None
    to_state: PayoutState
    operator_id: Optional[str] = None
    at: datetime


class PayoutRequest(BaseModel):
    request_id: UUID
    creator_id: str
    requested_amount: Money
    destination: DestinationDetails
    state: PayoutState
    requested_at: datetime
    decided_at: Optional[datetime] = None
    processing_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    # Last operator to act; the full trail lives in transitions
    operator_id: Optional[str] = None
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    failure_reason: Optional[str] = None
    settlement_reference: Optional[str] = None
    creator_notes: Optional[str] = None
    idempotency_key: Optional[str] = None
    transitions: list[PayoutTransition] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    def is_open(self) -> bool:
        return self.state in OPEN_STATES

    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class SubmitPayoutRequest(BaseModel):
    requested_amount: Money
    destination: DestinationDetails
    creator_notes: Optional[str] = None
    idempotency_key: Optional[str] = Field(default=None, description="Re-query key for retried submissions")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "requested_amount": "500.00",
            "destination": {
                "bank_name": "FNB",
                "account_number": "62000000000",
                "account_type": "cheque",
                "branch_code": "250655",
                "account_holder_name": "Thandi Creator"
            },
            "idempotency_key": "payout-2024-06-01"
        }
    })


class DecidePayoutRequest(BaseModel):
    operator_id: str = Field(..., min_length=1)
    decision: PayoutDecision
    reason_or_reference: Optional[str] = Field(
        default=None, description="Rejection/failure reason, or settlement reference on completion"
    )


class LedgerEntry(BaseModel):
    id: UUID
    creator_id: str
    entry_type: EntryType
    amount: Money
    available_after: Money
    pending_after: Money
    reference: str
    description: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerHistoryResponse(BaseModel):
    creator_id: str
    entries: list[LedgerEntry]
    total_count: int
    available_balance: Money
    pending_balance: Money
