import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol
from uuid import UUID

from pydantic import BaseModel

from .models import PayoutRequest, PayoutState
from .money import Money

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    PAYOUT_REQUEST = "payout_request"
    PAYOUT_UPDATE = "payout_update"


class Notification(BaseModel):
    recipient_id: str
    recipient_role: str
    kind: NotificationKind
    title: str
    message: str
    payout_id: UUID
    amount: Money
    state: PayoutState
    created_at: datetime


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None:
        ...


class InMemoryNotifier:
    """Keeps every notification it is handed; stands in for push/email delivery."""

    def __init__(self):
        self.sent: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.sent.append(notification)
        logger.info("Notified %s %s: %s", notification.recipient_role, notification.recipient_id, notification.title)


def submission_notification(request: PayoutRequest, currency: str) -> Notification:
    return Notification(
        recipient_id="admins",
        recipient_role="admin",
        kind=NotificationKind.PAYOUT_REQUEST,
        title="New Creator Payout Request",
        message=f"Creator {request.creator_id} requested {currency} {request.requested_amount} payout",
        payout_id=request.request_id,
        amount=request.requested_amount,
        state=request.state,
        created_at=datetime.now(timezone.utc),
    )


def status_notification(request: PayoutRequest, currency: str) -> Optional[Notification]:
    amount = f"{currency} {request.requested_amount}"
    if request.state == PayoutState.APPROVED:
        title, message = "Payout Approved", f"Your payout of {amount} has been approved"
    elif request.state == PayoutState.REJECTED:
        title = "Payout Rejected"
        message = f"Your payout request of {amount} was rejected: {request.rejection_reason}"
    elif request.state == PayoutState.COMPLETED:
        title, message = "Payout Completed", f"{amount} has been paid to your account"
    else:
        return None

    return Notification(
        recipient_id=request.creator_id,
        recipient_role="creator",
        kind=NotificationKind.PAYOUT_UPDATE,
        title=title,
        message=message,
        payout_id=request.request_id,
        amount=request.requested_amount,
        state=request.state,
        created_at=datetime.now(timezone.utc),
    )
