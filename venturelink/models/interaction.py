"""
Request records exchanged between investors and startups.

- Interaction: investor <-> startup request with a pending -> terminal lifecycle
- Connection: simpler bilateral request, created directly by an investor or
  as the companion of a nudge
- Nudge: quota-metered startup -> investor outreach, paired with a Connection
- Notification: inbox entry fired on lifecycle events
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from bson import ObjectId


class InteractionStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    expired = "expired"


# Statuses a receiver may move a pending interaction/nudge into
TERMINAL_STATUSES = {
    InteractionStatus.accepted.value,
    InteractionStatus.rejected.value,
    InteractionStatus.expired.value,
}

# Statuses that block a new interaction for the same pair
LIVE_STATUSES = [InteractionStatus.pending.value, InteractionStatus.accepted.value]


class ConnectionStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    VCR = "VCR"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


class NotificationType(str, Enum):
    job = "job"
    application = "application"
    message = "message"
    investment = "investment"


MAX_MESSAGE_LENGTH = 500


def new_interaction(
    sender: ObjectId,
    receiver: ObjectId,
    amount: float,
    currency: Currency,
    message: Optional[str],
    ttl_days: int,
    now: Optional[datetime] = None,
) -> dict:
    """Build a pending interaction document."""
    now = now or datetime.utcnow()
    return {
        "sender": sender,
        "receiver": receiver,
        "status": InteractionStatus.pending.value,
        "amount": amount,
        "currency": currency.value,
        "message": message,
        "createdAt": now,
        "updatedAt": now,
        "expiresAt": now + timedelta(days=ttl_days),
    }


def new_connection(sender: ObjectId, receiver: ObjectId, now: Optional[datetime] = None) -> dict:
    """Build a pending connection document."""
    now = now or datetime.utcnow()
    return {
        "sender": sender,
        "receiver": receiver,
        "status": ConnectionStatus.pending.value,
        "nudge": None,
        "createdAt": now,
        "updatedAt": now,
    }


def new_nudge(
    sender: ObjectId,
    receiver: ObjectId,
    connection_id: ObjectId,
    ttl_days: int,
    now: Optional[datetime] = None,
) -> dict:
    """Build a pending nudge document linked to its connection."""
    now = now or datetime.utcnow()
    return {
        "sender": sender,
        "receiver": receiver,
        "status": InteractionStatus.pending.value,
        "message": None,
        "amount": 0,
        "currency": Currency.VCR.value,
        "paymentStatus": PaymentStatus.pending.value,
        "connection": connection_id,
        "createdAt": now,
        "updatedAt": now,
        "expiresAt": now + timedelta(days=ttl_days),
    }


def new_notification(
    user_id: ObjectId,
    notification_type: NotificationType,
    message: str,
    link: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Build an unread notification document."""
    now = now or datetime.utcnow()
    return {
        "userId": user_id,
        "type": notification_type.value,
        "message": message,
        "link": link,
        "read": False,
        "createdAt": now,
        "updatedAt": now,
    }
