"""
Interaction Lifecycle Service

PURPOSE:
Manage connection requests between investors and startups.

LIFECYCLE:
    pending --(receiver)--> accepted | rejected | expired   (terminal)
    pending --(expiresAt passed, on any list read)--> expired

RULES:
- investor -> startup or startup -> investor only, never to yourself
- at most one pending/accepted interaction per (sender, receiver); a rejected
  or expired one does not block a new attempt
- only the receiver moves a pending interaction, exactly once
- either participant may delete, whatever the status

Expiry is pull-based: every list read first runs one conditional bulk update
(pending AND expiresAt <= now -> expired). There is no background timer.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo.database import Database

from venturelink.core.config import get_settings
from venturelink.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRoleError,
    NotFoundError,
    ValidationError,
)
from venturelink.db.mongodb import mongo_transaction
from venturelink.models.interaction import (
    MAX_MESSAGE_LENGTH,
    TERMINAL_STATUSES,
    Currency,
    InteractionStatus,
    NotificationType,
    new_interaction,
)
from venturelink.models.user import UserType
from venturelink.services.card_service import counterpart_id, counterpart_summary, project_card
from venturelink.services.mongo_service import (
    InteractionStore,
    UserStore,
    serialize_doc,
    to_object_id,
)
from venturelink.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Who may receive an interaction from whom
ROLE_PAIRS = {
    UserType.investor.value: UserType.startup.value,
    UserType.startup.value: UserType.investor.value,
}

MARKET_ROLES = (UserType.investor.value, UserType.startup.value)


class InteractionService:
    """
    Creates, transitions, expires and lists investor <-> startup interactions.
    """

    def __init__(self, db: Optional[Database] = None, notifier: Optional[NotificationService] = None):
        self.db = db
        self.users = UserStore(db)
        self.interactions = InteractionStore(db)
        self.notifier = notifier or NotificationService(db)
        self.settings = get_settings()

    # ------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------

    def _load_user(self, user_id: ObjectId, label: str) -> dict:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError(f"{label} not found")
        return user

    def _require_market_user(self, user_id: ObjectId, action: str) -> dict:
        user = self._load_user(user_id, "User")
        if user.get("userType") not in MARKET_ROLES:
            raise ForbiddenError(f"Only investors and startups can {action}")
        return user

    def expire_stale_interactions(self, now: Optional[datetime] = None) -> int:
        """Flip every elapsed pending interaction to expired."""
        count = self.interactions.expire_stale(now)
        if count:
            logger.info(f"Expired {count} stale interaction(s)")
        return count

    def _project(self, records: List[dict], viewer_id: ObjectId, include_offer: bool = False) -> List[dict]:
        """Cards about the other party; records whose other party is gone are dropped."""
        others: Dict[ObjectId, dict] = self.users.get_many(
            counterpart_id(r, viewer_id) for r in records
        )
        cards = []
        for record in records:
            other = others.get(counterpart_id(record, viewer_id))
            card = project_card(record, viewer_id, other, include_offer=include_offer)
            if card is None:
                logger.debug(f"Dropping interaction {record['_id']}: other party not found")
                continue
            cards.append(card)
        return cards

    # ------------------------------------------------------------
    # commands
    # ------------------------------------------------------------

    def send_interaction(
        self,
        sender_id: ObjectId,
        receiver_id: str,
        amount: float = 0,
        message: Optional[str] = None,
    ) -> dict:
        """
        Send a new interaction request.

        Args:
            sender_id: Authenticated user
            receiver_id: Raw id from the request path
            amount: Offered amount, kept only when the sender is a startup
            message: Optional note (max 500 chars)

        Returns:
            The created (pending) interaction
        """
        receiver_oid = to_object_id(receiver_id, "receiver ID")
        sender = self._load_user(sender_id, "Sender")
        receiver = self._load_user(receiver_oid, "Receiver")

        logger.debug(
            "Sender and receiver details",
            extra={"extra_fields": {
                "sender": {"id": str(sender_id), "userType": sender.get("userType")},
                "receiver": {"id": str(receiver_oid), "userType": receiver.get("userType")},
            }},
        )

        if sender_id == receiver_oid:
            raise ValidationError("Cannot send interaction to yourself")

        sender_type = sender.get("userType")
        expected = ROLE_PAIRS.get(sender_type)
        if expected is None:
            raise InvalidRoleError("Only investors and startups can send interactions")
        if receiver.get("userType") != expected:
            raise InvalidRoleError(f"Receiver must be a {expected}")

        if message is not None and len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")
        if amount is None:
            amount = 0
        if amount < 0:
            raise ValidationError("Amount cannot be negative")

        existing = self.interactions.find_live(sender_id, receiver_oid)
        if existing:
            raise ConflictError(f"Interaction already {existing['status']}")

        if sender_type == UserType.startup.value:
            currency = Currency.VCR
        else:
            amount, currency = 0, Currency.USD

        doc = new_interaction(
            sender_id, receiver_oid, amount, currency, message, self.settings.interaction_ttl_days
        )
        # Partial unique index backs up the check above under concurrent sends
        doc["_id"] = self.interactions.insert(doc)

        logger.info(
            "Interaction sent",
            extra={"extra_fields": {
                "sender_id": str(sender_id),
                "receiver_id": str(receiver_oid),
                "interaction_id": str(doc["_id"]),
                "expires_at": doc["expiresAt"].isoformat(),
            }},
        )

        self.notifier.notify(
            receiver_oid,
            NotificationType.investment,
            f"New connection request from {sender.get('firstName') or 'a ' + sender_type}",
            link=f"/interactions/{doc['_id']}",
        )
        return serialize_doc(doc)

    def update_interaction(self, interaction_id: str, receiver_id: ObjectId, status: str) -> dict:
        """
        Receiver accepts, rejects or expires a pending interaction.

        Runs in a transaction: the lookup and the conditional write either
        both happen or neither does.
        """
        interaction_oid = to_object_id(interaction_id, "interaction ID")
        if status not in TERMINAL_STATUSES:
            raise ValidationError("Invalid status value")

        with mongo_transaction(self.db) as session:
            interaction = self.interactions.get(interaction_oid, session=session, receiver=receiver_id)
            if not interaction:
                raise NotFoundError("Interaction not found or unauthorized")

            if interaction["status"] != InteractionStatus.pending.value:
                raise ConflictError(f"Interaction already processed (status: {interaction['status']})")

            updated = self.interactions.transition(interaction_oid, receiver_id, status, session=session)
            if updated is None:
                # Lost the race against another transition
                raise ConflictError("Interaction already processed")

        logger.info(
            "Interaction updated",
            extra={"extra_fields": {"interaction_id": str(interaction_oid), "status": status}},
        )

        self.notifier.notify(
            updated["sender"],
            NotificationType.investment,
            f"Your connection request was {status}",
            link=f"/interactions/{interaction_oid}",
        )
        return serialize_doc(updated)

    def delete_interaction(self, interaction_id: str, user_id: ObjectId) -> None:
        """Either participant deletes the interaction, whatever its status."""
        interaction_oid = to_object_id(interaction_id, "interaction ID")

        with mongo_transaction(self.db) as session:
            interaction = self.interactions.find_one(
                {"_id": interaction_oid, "$or": [{"sender": user_id}, {"receiver": user_id}]},
                session=session,
            )
            if not interaction:
                raise NotFoundError("Interaction not found or unauthorized")

            logger.debug(
                "Interaction found for deletion",
                extra={"extra_fields": {
                    "interaction_id": str(interaction_oid),
                    "status": interaction["status"],
                }},
            )
            self.interactions.delete(interaction_oid, session=session)

        logger.info(
            "Interaction deleted",
            extra={"extra_fields": {"interaction_id": str(interaction_oid), "user_id": str(user_id)}},
        )

    # ------------------------------------------------------------
    # queries
    # ------------------------------------------------------------

    def get_interactions(self, user_id: ObjectId) -> List[dict]:
        """Accepted interactions on either side, as cards about the other party."""
        self._require_market_user(user_id, "view interactions")
        self.expire_stale_interactions()

        records = self.interactions.find({
            "$or": [{"sender": user_id}, {"receiver": user_id}],
            "status": InteractionStatus.accepted.value,
        })
        cards = self._project(records, user_id)
        logger.debug(f"Interactions query for {user_id}: {len(records)} found, {len(cards)} cards")
        return cards

    def get_pending_interactions(self, user_id: ObjectId) -> List[dict]:
        """Pending interactions received by the user, as cards about the sender."""
        self._require_market_user(user_id, "view pending interactions")
        self.expire_stale_interactions()

        records = self.interactions.find({
            "receiver": user_id,
            "status": InteractionStatus.pending.value,
        })
        cards = self._project(records, user_id, include_offer=True)
        logger.debug(f"Pending interactions query for {user_id}: {len(records)} found, {len(cards)} cards")
        return cards

    def get_history(self, user_id: ObjectId) -> dict:
        """Every interaction an investor sent or received, any status."""
        user = self._load_user(user_id, "User")
        if user.get("userType") != UserType.investor.value:
            raise ForbiddenError("Only investors can view interaction history")
        self.expire_stale_interactions()

        sent = self.interactions.find({"sender": user_id})
        received = self.interactions.find({"receiver": user_id})
        others = self.users.get_many(
            [r["receiver"] for r in sent] + [r["sender"] for r in received]
        )

        def populate(record: dict, field: str) -> dict:
            doc = serialize_doc(record)
            doc[field] = counterpart_summary(others.get(record[field])) or str(record[field])
            return doc

        return {
            "sent": [populate(r, "receiver") for r in sent],
            "received": [populate(r, "sender") for r in received],
        }


def get_interaction_service(db: Optional[Database] = None) -> InteractionService:
    """Get interaction service instance."""
    return InteractionService(db)
