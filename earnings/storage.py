import logging
import random
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
from uuid import UUID, uuid4

from .errors import ContendedError, StorageUnavailableError
from .models import EntryType, OPEN_STATES
from .money import Money

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """
    Process-local store for creator accounts, payout requests, the ledger
    journal and both idempotency indexes.

    Records are plain dicts; services turn them into models on the way out.
    Writers must hold the creator's lock from ``AccountLocks``.
    """

    def __init__(self):
        self.accounts: dict[str, dict] = {}
        self.payout_requests: dict[UUID, dict] = {}
        self.ledger_entries: dict[UUID, dict] = {}
        self.posted_events: dict[str, dict] = {}
        self.payout_idempotency_index: dict[str, UUID] = {}
        self.event_owners: dict[str, str] = {}
        self.open_requests: dict[str, UUID] = {}
        self._claims_guard = threading.Lock()
        self.online = True

    def ensure_available(self) -> None:
        if not self.online:
            raise StorageUnavailableError("Earnings storage is offline")

    def take_offline(self) -> None:
        logger.warning("Earnings storage taken offline")
        self.online = False

    def bring_online(self) -> None:
        logger.info("Earnings storage back online")
        self.online = True

    def get_account(self, creator_id: str) -> Optional[dict]:
        return self.accounts.get(creator_id)

    def new_account(self, creator_id: str) -> dict:
        """Zeroed record for ``creator_id``; persisted only once saved."""
        now = datetime.now(timezone.utc)
        return {
            "creator_id": creator_id,
            "available_balance": Money.zero(),
            "pending_balance": Money.zero(),
            "lifetime_earned": Money.zero(),
            "lifetime_withdrawn": Money.zero(),
            "lifetime_sales": Money.zero(),
            "total_conversions": 0,
            "month_sales": 0,
            "created_at": now,
            "updated_at": now,
        }

    def save_account(self, account: dict) -> None:
        # Swap the whole record so lock-free readers never see half an update
        self.accounts[account["creator_id"]] = account

    def save_request(self, request: dict) -> None:
        request_id = request["request_id"]
        self.payout_requests[request_id] = request
        if request["state"] in OPEN_STATES:
            self.open_requests[request["creator_id"]] = request_id
        elif self.open_requests.get(request["creator_id"]) == request_id:
            del self.open_requests[request["creator_id"]]

    def open_request_for(self, creator_id: str) -> Optional[dict]:
        request_id = self.open_requests.get(creator_id)
        return self.payout_requests[request_id] if request_id else None

    def claim_event(self, event_id: str, creator_id: str) -> str:
        """
        Bind ``event_id`` to ``creator_id`` unless another creator holds it.

        Returns the creator the event belongs to after the call. Claims are
        global, so two creators racing on one event id cannot both win.
        """
        with self._claims_guard:
            return self.event_owners.setdefault(event_id, creator_id)

    def release_event(self, event_id: str, creator_id: str) -> None:
        with self._claims_guard:
            if self.event_owners.get(event_id) == creator_id:
                del self.event_owners[event_id]

    def record_movement(
        self,
        account: dict,
        entry_type: EntryType,
        amount: Money,
        reference: str,
        description: str,
    ) -> dict:
        entry_id = uuid4()
        entry = {
            "id": entry_id,
            "creator_id": account["creator_id"],
            "entry_type": entry_type,
            "amount": amount,
            "available_after": account["available_balance"],
            "pending_after": account["pending_balance"],
            "reference": reference,
            "description": description,
            "created_at": datetime.now(timezone.utc),
        }
        self.ledger_entries[entry_id] = entry
        return entry


class AccountLocks:
    """Per-creator mutexes with bounded, backed-off acquisition."""

    def __init__(self, timeout: float = 2.0, max_attempts: int = 3, base_delay: float = 0.05):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, creator_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(creator_id, threading.Lock())

    @contextmanager
    def hold(self, creator_id: str) -> Iterator[None]:
        lock = self._lock_for(creator_id)
        for attempt in range(1, self.max_attempts + 1):
            if lock.acquire(timeout=self.timeout):
                break
            if attempt == self.max_attempts:
                logger.error(
                    "Gave up on account lock for creator %s after %d attempts", creator_id, attempt
                )
                raise ContendedError(f"Account {creator_id} is busy, retry later")
            delay = self.base_delay * (2 ** (attempt - 1)) * (0.5 + random.random() * 0.5)
            logger.warning(
                "Account lock for creator %s busy (attempt %d/%d), retrying in %.2fs",
                creator_id, attempt, self.max_attempts, delay,
            )
            time.sleep(delay)
        try:
            yield
        finally:
            lock.release()
