from typing import Optional, Union
from uuid import UUID

from .commission import CommissionEngine, summarize_account
from .config import Settings, get_settings
from .models import (
    AccountSummary,
    CommissionEvent,
    CommitResult,
    DestinationDetails,
    LedgerEntry,
    LedgerHistoryResponse,
    PayoutDecision,
    PayoutRequest,
)
from .money import AmountLike
from .notifications import InMemoryNotifier, Notifier
from .payouts import PayoutWorkflow
from .storage import AccountLocks, InMemoryStorage


class EarningsService:
    """Entry point for order fulfilment, the creator dashboard and the admin review queue."""

    def __init__(
        self,
        storage: Optional[InMemoryStorage] = None,
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.storage = storage or InMemoryStorage()
        self.settings = settings or get_settings()
        self.notifier = notifier if notifier is not None else InMemoryNotifier()
        self.locks = AccountLocks(
            timeout=self.settings.lock_timeout_seconds,
            max_attempts=self.settings.lock_max_attempts,
            base_delay=self.settings.lock_retry_base_delay,
        )
        self.commissions = CommissionEngine(self.storage, self.locks, self.settings)
        self.payouts = PayoutWorkflow(self.storage, self.locks, self.settings, self.notifier)

    def post_commission(self, event: CommissionEvent) -> CommitResult:
        return self.commissions.post_commission(event)

    def get_account_summary(self, creator_id: str) -> AccountSummary:
        self.storage.ensure_available()
        account = self.storage.get_account(creator_id) or self.storage.new_account(creator_id)
        return summarize_account(account, self.settings.currency)

    def get_ledger_history(self, creator_id: str, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        self.storage.ensure_available()
        all_entries = [
            LedgerEntry(**e) for e in list(self.storage.ledger_entries.values())
            if e["creator_id"] == creator_id
        ]
        # Journal dict keeps append order; newest first without relying on clock ties
        all_entries.reverse()
        paginated = all_entries[offset:offset + limit]
        summary = self.get_account_summary(creator_id)

        return LedgerHistoryResponse(
            creator_id=creator_id,
            entries=paginated,
            total_count=len(all_entries),
            available_balance=summary.available_balance,
            pending_balance=summary.pending_balance,
        )

    def submit_payout_request(
        self,
        creator_id: str,
        requested_amount: AmountLike,
        destination_details: Union[DestinationDetails, dict],
        creator_notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> PayoutRequest:
        destination = DestinationDetails.model_validate(destination_details)
        return self.payouts.submit(creator_id, requested_amount, destination, creator_notes, idempotency_key)

    def decide_payout_request(
        self,
        request_id: UUID,
        operator_id: str,
        decision: Union[PayoutDecision, str],
        reason_or_reference: Optional[str] = None,
    ) -> PayoutRequest:
        return self.payouts.decide(request_id, operator_id, PayoutDecision(decision), reason_or_reference)

    def get_payout_request(self, request_id: UUID) -> PayoutRequest:
        return self.payouts.get(request_id)

    def list_payout_requests(self, creator_id: str) -> list[PayoutRequest]:
        return self.payouts.list_for_creator(creator_id)

    def list_open_payout_requests(self) -> list[PayoutRequest]:
        return self.payouts.list_open()

    def reset_monthly_sales(self) -> int:
        return self.commissions.reset_monthly_sales()
