import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from .config import Settings
from .errors import EventCreatorMismatchError, InvalidBonusRateError
from .models import AccountSummary, CommissionEvent, CommitResult, EntryType, PostingStatus
from .storage import AccountLocks, InMemoryStorage
from .tiers import progression_tier_for, rate_for, tier_for

logger = logging.getLogger(__name__)


def summarize_account(account: dict, currency: str) -> AccountSummary:
    tier = tier_for(account["lifetime_earned"])
    return AccountSummary(
        creator_id=account["creator_id"],
        currency=currency,
        available_balance=account["available_balance"],
        pending_balance=account["pending_balance"],
        lifetime_earned=account["lifetime_earned"],
        lifetime_withdrawn=account["lifetime_withdrawn"],
        lifetime_sales=account["lifetime_sales"],
        tier=tier.name,
        tier_rate_percent=rate_for(tier),
        progression_tier=progression_tier_for(account["month_sales"]).name,
        month_sales=account["month_sales"],
        total_conversions=account["total_conversions"],
    )


class CommissionEngine:
    """
    Turns qualifying sale events into ledger credits.

    The tier is read from lifetime earnings *before* the event is applied, so a
    sale never lifts its own rate. Base and bonus components are rounded to the
    cent separately and summed into a single credit. Each ``event_id`` credits
    at most once; replays get the original result back flagged ALREADY_POSTED.
    An event id is bound to the first creator that claims it, and a posting of
    the same id for anyone else is refused as a conflict.
    """

    def __init__(self, storage: InMemoryStorage, locks: AccountLocks, settings: Settings):
        self.storage = storage
        self.locks = locks
        self.settings = settings

    def post_commission(self, event: CommissionEvent) -> CommitResult:
        self.storage.ensure_available()
        bonus_rate = self._validate_bonus_rate(event.bonus_rate_percent)

        with self.locks.hold(event.creator_id):
            owner = self.storage.claim_event(event.event_id, event.creator_id)
            if owner != event.creator_id:
                logger.warning(
                    "Commission event %s belongs to creator %s, refused for %s",
                    event.event_id, owner, event.creator_id,
                )
                raise EventCreatorMismatchError(
                    f"Event {event.event_id} was already posted for another creator"
                )

            prior = self.storage.posted_events.get(event.event_id)
            if prior:
                logger.warning("Commission event %s already posted, ignoring replay", event.event_id)
                return CommitResult(**{
                    **prior,
                    "status": PostingStatus.ALREADY_POSTED,
                    "message": "Commission already posted (idempotent return)",
                })

            try:
                result = self._credit(event, bonus_rate)
            except Exception:
                self.storage.release_event(event.event_id, event.creator_id)
                raise

        logger.info(
            "Posted commission %s for creator %s: base=%s bonus=%s total=%s",
            event.event_id, event.creator_id,
            result["base_component"], result["bonus_component"], result["total_credit"],
        )
        return CommitResult(**result)

    def _credit(self, event: CommissionEvent, bonus_rate: Decimal) -> dict:
        """Apply one claimed event to the creator's account. Caller holds the creator lock."""
        account = self.storage.get_account(event.creator_id) or self.storage.new_account(event.creator_id)
        tier = tier_for(account["lifetime_earned"])
        base_component = event.qualifying_amount.percent_of(rate_for(tier))
        bonus_component = event.qualifying_amount.percent_of(bonus_rate)
        total_credit = base_component + bonus_component

        updated = {
            **account,
            "available_balance": account["available_balance"] + total_credit,
            "lifetime_earned": account["lifetime_earned"] + total_credit,
            "lifetime_sales": account["lifetime_sales"] + event.qualifying_amount,
            "total_conversions": account["total_conversions"] + 1,
            "month_sales": account["month_sales"] + 1,
            "updated_at": datetime.now(timezone.utc),
        }
        self.storage.save_account(updated)
        self.storage.record_movement(
            updated,
            EntryType.CREDIT,
            total_credit,
            reference=event.event_id,
            description=f"Commission for {event.event_id} at {tier.name} {rate_for(tier)}%"
            + (f" + {bonus_rate}% ad bonus" if bonus_rate else ""),
        )

        result = {
            "status": PostingStatus.POSTED,
            "event_id": event.event_id,
            "creator_id": event.creator_id,
            "tier": tier.name,
            "base_rate_percent": rate_for(tier),
            "bonus_rate_percent": bonus_rate,
            "base_component": base_component,
            "bonus_component": bonus_component,
            "total_credit": total_credit,
            "balances_after": summarize_account(updated, self.settings.currency),
            "posted_at": updated["updated_at"],
            "message": "Commission posted successfully",
        }
        self.storage.posted_events[event.event_id] = result
        return result

    def _validate_bonus_rate(self, rate: Optional[Decimal]) -> Decimal:
        if rate is None:
            return Decimal("0")
        if not rate.is_finite() or rate < 0 or rate > self.settings.max_bonus_rate_percent:
            raise InvalidBonusRateError(
                f"Bonus rate must be between 0 and {self.settings.max_bonus_rate_percent}%, got {rate}"
            )
        return rate

    def reset_monthly_sales(self) -> int:
        self.storage.ensure_available()
        reset = 0
        for creator_id in list(self.storage.accounts):
            with self.locks.hold(creator_id):
                account = self.storage.accounts[creator_id]
                if account["month_sales"]:
                    self.storage.save_account({
                        **account,
                        "month_sales": 0,
                        "updated_at": datetime.now(timezone.utc),
                    })
                reset += 1
        logger.info("Reset monthly sales for %d creators", reset)
        return reset
