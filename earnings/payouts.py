import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from .config import Settings
from .errors import (
    BelowMinimumPayoutError,
    InsufficientAvailableBalanceError,
    InvalidDestinationDetailsError,
    InvalidStateTransitionError,
    MissingOperatorError,
    MissingReasonError,
    MissingSettlementReferenceError,
    RequestAlreadyOpenError,
    RequestNotFoundError,
)
from .models import (
    DestinationDetails,
    EntryType,
    PayoutDecision,
    PayoutRequest,
    PayoutState,
)
from .money import AmountLike, Money
from .notifications import Notification, Notifier, status_notification, submission_notification
from .storage import AccountLocks, InMemoryStorage

logger = logging.getLogger(__name__)


TRANSITIONS: dict[tuple[PayoutState, PayoutDecision], PayoutState] = {
    (PayoutState.PENDING, PayoutDecision.APPROVE): PayoutState.APPROVED,
    (PayoutState.PENDING, PayoutDecision.REJECT): PayoutState.REJECTED,
    (PayoutState.APPROVED, PayoutDecision.PROCESS): PayoutState.PROCESSING,
    (PayoutState.APPROVED, PayoutDecision.COMPLETE): PayoutState.COMPLETED,
    (PayoutState.PROCESSING, PayoutDecision.COMPLETE): PayoutState.COMPLETED,
    (PayoutState.APPROVED, PayoutDecision.FAIL): PayoutState.FAILED,
    (PayoutState.PROCESSING, PayoutDecision.FAIL): PayoutState.FAILED,
}


class PayoutWorkflow:
    """
    Withdrawal requests: PENDING -> APPROVED -> PROCESSING -> COMPLETED,
    with PENDING -> REJECTED and APPROVED|PROCESSING -> FAILED.

    Submission locks the requested amount (available -> pending). Rejection and
    failure release it back to available; completion moves it out to
    lifetime_withdrawn. A creator has at most one open request at a time.
    """

    def __init__(
        self,
        storage: InMemoryStorage,
        locks: AccountLocks,
        settings: Settings,
        notifier: Optional[Notifier] = None,
    ):
        self.storage = storage
        self.locks = locks
        self.settings = settings
        self.notifier = notifier

    @property
    def minimum_payout(self) -> Money:
        return Money.parse(self.settings.minimum_payout)

    def submit(
        self,
        creator_id: str,
        requested_amount: AmountLike,
        destination: DestinationDetails,
        creator_notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> PayoutRequest:
        self.storage.ensure_available()
        amount = Money.parse(requested_amount)

        missing = destination.missing_fields()
        if missing:
            raise InvalidDestinationDetailsError(
                f"Destination details are incomplete, missing: {', '.join(missing)}"
            )
        if amount < self.minimum_payout:
            raise BelowMinimumPayoutError(
                f"Minimum payout amount is {self.settings.currency} {self.minimum_payout}, requested {amount}"
            )

        index_key = f"{creator_id}:{idempotency_key}" if idempotency_key else None

        with self.locks.hold(creator_id):
            if index_key and index_key in self.storage.payout_idempotency_index:
                existing_id = self.storage.payout_idempotency_index[index_key]
                logger.warning(
                    "Payout submission %s for creator %s already recorded as %s",
                    idempotency_key, creator_id, existing_id,
                )
                return PayoutRequest(**self.storage.payout_requests[existing_id])

            open_request = self.storage.open_request_for(creator_id)
            if open_request:
                raise RequestAlreadyOpenError(
                    f"Creator {creator_id} already has payout request "
                    f"{open_request['request_id']} in {open_request['state'].value} state"
                )

            account = self.storage.get_account(creator_id) or self.storage.new_account(creator_id)
            if amount > account["available_balance"]:
                raise InsufficientAvailableBalanceError(
                    f"Insufficient balance. Available: {account['available_balance']}, Requested: {amount}"
                )

            now = datetime.now(timezone.utc)
            updated = {
                **account,
                "available_balance": account["available_balance"] - amount,
                "pending_balance": account["pending_balance"] + amount,
                "updated_at": now,
            }
            request_id = uuid4()
            request_data = {
                "request_id": request_id,
                "creator_id": creator_id,
                "requested_amount": amount,
                "destination": destination,
                "state": PayoutState.PENDING,
                "requested_at": now,
                "decided_at": None,
                "processing_at": None,
                "completed_at": None,
                "failed_at": None,
                "operator_id": None,
                "approved_by": None,
                "rejection_reason": None,
                "failure_reason": None,
                "settlement_reference": None,
                "creator_notes": creator_notes,
                "idempotency_key": idempotency_key,
                "transitions": [{"from_state": None, "to_state": PayoutState.PENDING, "operator_id": None, "at": now}],
            }

            self.storage.save_account(updated)
            self.storage.save_request(request_data)
            if index_key:
                self.storage.payout_idempotency_index[index_key] = request_id
            self.storage.record_movement(
                updated, EntryType.LOCK, amount,
                reference=str(request_id),
                description=f"Funds locked for payout request {request_id}",
            )

        logger.info("Creator %s requested payout %s of %s; funds locked", creator_id, request_id, amount)
        request = PayoutRequest(**request_data)
        self._notify(submission_notification(request, self.settings.currency))
        return request

    def decide(
        self,
        request_id: UUID,
        operator_id: str,
        decision: PayoutDecision,
        reason_or_reference: Optional[str] = None,
    ) -> PayoutRequest:
        self.storage.ensure_available()
        operator_id = (operator_id or "").strip()
        if not operator_id:
            raise MissingOperatorError("An operator id is required to decide a payout request")
        request_data = self.storage.payout_requests.get(request_id)
        if not request_data:
            raise RequestNotFoundError(f"Payout request {request_id} not found")

        with self.locks.hold(request_data["creator_id"]):
            # Re-read under the lock; another operator may have moved it
            request_data = self.storage.payout_requests[request_id]
            current = request_data["state"]
            target = TRANSITIONS.get((current, decision))
            if target is None:
                raise InvalidStateTransitionError(
                    f"Cannot {decision.value.lower()} payout request in {current.value} state"
                )

            note = (reason_or_reference or "").strip()
            if decision in (PayoutDecision.REJECT, PayoutDecision.FAIL) and not note:
                raise MissingReasonError(f"A reason is required to {decision.value.lower()} a payout request")
            if decision == PayoutDecision.COMPLETE and not note:
                raise MissingSettlementReferenceError("A settlement reference is required to complete a payout")

            now = datetime.now(timezone.utc)
            amount = request_data["requested_amount"]
            changes = {
                "state": target,
                "operator_id": operator_id,
                "transitions": request_data["transitions"] + [
                    {"from_state": current, "to_state": target, "operator_id": operator_id, "at": now}
                ],
            }

            account = self.storage.accounts[request_data["creator_id"]]
            updated_account = None
            entry = None

            if decision == PayoutDecision.APPROVE:
                changes.update(decided_at=now, approved_by=operator_id)
            elif decision == PayoutDecision.PROCESS:
                changes["processing_at"] = now
            elif decision == PayoutDecision.REJECT:
                changes.update(decided_at=now, rejection_reason=note)
                updated_account = self._release(account, amount, now)
                entry = (EntryType.RELEASE, f"Payout request {request_id} rejected: {note}")
            elif decision == PayoutDecision.FAIL:
                changes.update(failed_at=now, failure_reason=note)
                updated_account = self._release(account, amount, now)
                entry = (EntryType.RELEASE, f"Payout request {request_id} failed: {note}")
            elif decision == PayoutDecision.COMPLETE:
                changes.update(completed_at=now, settlement_reference=note)
                updated_account = {
                    **account,
                    "pending_balance": account["pending_balance"] - amount,
                    "lifetime_withdrawn": account["lifetime_withdrawn"] + amount,
                    "updated_at": now,
                }
                entry = (EntryType.WITHDRAWAL, f"Payout request {request_id} settled, reference {note}")

            if updated_account is not None:
                self.storage.save_account(updated_account)
                entry_type, description = entry
                self.storage.record_movement(
                    updated_account, entry_type, amount, reference=str(request_id), description=description,
                )
            request_data = {**request_data, **changes}
            self.storage.save_request(request_data)

        logger.info(
            "Payout request %s for creator %s moved %s -> %s by %s",
            request_id, request_data["creator_id"], current.value, target.value, operator_id,
        )
        request = PayoutRequest(**request_data)
        notification = status_notification(request, self.settings.currency)
        if notification:
            self._notify(notification)
        return request

    def get(self, request_id: UUID) -> PayoutRequest:
        self.storage.ensure_available()
        request_data = self.storage.payout_requests.get(request_id)
        if not request_data:
            raise RequestNotFoundError(f"Payout request {request_id} not found")
        return PayoutRequest(**request_data)

    def list_for_creator(self, creator_id: str) -> list[PayoutRequest]:
        self.storage.ensure_available()
        requests = [
            PayoutRequest(**r) for r in list(self.storage.payout_requests.values())
            if r["creator_id"] == creator_id
        ]
        requests.sort(key=lambda r: r.requested_at)
        return requests

    def list_open(self) -> list[PayoutRequest]:
        self.storage.ensure_available()
        open_requests = [
            PayoutRequest(**self.storage.payout_requests[request_id])
            for request_id in list(self.storage.open_requests.values())
        ]
        open_requests.sort(key=lambda r: r.requested_at)
        return open_requests

    @staticmethod
    def _release(account: dict, amount: Money, now: datetime) -> dict:
        return {
            **account,
            "pending_balance": account["pending_balance"] - amount,
            "available_balance": account["available_balance"] + amount,
            "updated_at": now,
        }

    def _notify(self, notification: Notification) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(notification)
        except Exception:
            logger.exception("Failed to deliver %s notification for payout %s", notification.kind.value, notification.payout_id)
