"""
Nudge Service

A nudge is a startup's paid outreach to an investor. Each nudge rides on a
Connection record between the same two users:

    sendNudge:   reserve quota -> reuse/create connection -> insert nudge
                 -> link connection.nudge
    updateNudge: pending -> accepted | rejected | expired (receiver only);
                 accepting also accepts the connection

QUOTA:
Startups start with nudgeLimit=10 and buy more in fixed packs. nudgeUsage is
consumed with a compare-and-set so concurrent sends cannot overspend.

CONSISTENCY:
All writes of a send (or of an accept cascade) run in one Mongo transaction.
When transactions are disabled, a failed send undoes its own writes.
"""

import logging
from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database

from venturelink.core.config import NUDGE_PRICES, get_settings
from venturelink.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from venturelink.db.mongodb import mongo_transaction
from venturelink.models.interaction import (
    TERMINAL_STATUSES,
    ConnectionStatus,
    InteractionStatus,
    NotificationType,
    new_connection,
    new_nudge,
)
from venturelink.models.user import UserType
from venturelink.services.card_service import counterpart_summary
from venturelink.services.mongo_service import (
    ConnectionStore,
    NudgeStore,
    UserStore,
    serialize_doc,
    to_object_id,
)
from venturelink.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Attempts at the compare-and-set before giving up on a busy quota
QUOTA_RESERVE_ATTEMPTS = 3


class NudgeService:
    """
    Sends, answers and lists nudges; sells nudge packs.
    """

    def __init__(self, db: Optional[Database] = None, notifier: Optional[NotificationService] = None):
        self.db = db
        self.users = UserStore(db)
        self.nudges = NudgeStore(db)
        self.connections = ConnectionStore(db)
        self.notifier = notifier or NotificationService(db)
        self.settings = get_settings()

    def _require_type(self, user_id: ObjectId, user_type: UserType, message: str) -> dict:
        user = self.users.get(user_id)
        if not user or user.get("userType") != user_type.value:
            raise ForbiddenError(message)
        return user

    def expire_stale_nudges(self) -> int:
        count = self.nudges.expire_stale()
        if count:
            logger.info(f"Expired {count} stale nudge(s)")
        return count

    # ------------------------------------------------------------
    # quota
    # ------------------------------------------------------------

    def _reserve_quota(self, sender: dict, session=None) -> None:
        """Consume one nudge from the sender's quota or raise QuotaExceededError."""
        user = sender
        for _ in range(QUOTA_RESERVE_ATTEMPTS):
            usage = user.get("nudgeUsage", 0)
            if usage >= user.get("nudgeLimit", 0):
                raise QuotaExceededError("Nudge limit reached")
            if self.users.reserve_nudge(user["_id"], usage, session=session):
                return
            # Someone else moved nudgeUsage in between; read again
            user = self.users.get(user["_id"], session=session)
            if not user:
                raise NotFoundError("Sender not found")
        raise ConflictError("Nudge quota is busy, please retry")

    def _undo_send(
        self,
        sender_id: ObjectId,
        created_nudge: Optional[ObjectId],
        created_connection: Optional[ObjectId],
    ) -> None:
        """Compensate a failed send when writes were not transactional."""
        logger.warning(f"Rolling back partial nudge send for {sender_id}")
        self.users.release_nudge(sender_id)
        if created_nudge is not None:
            self.nudges.delete(created_nudge)
        if created_connection is not None:
            self.connections.delete(created_connection)

    # ------------------------------------------------------------
    # commands
    # ------------------------------------------------------------

    def send_nudge(self, sender_id: ObjectId, receiver_id: str) -> dict:
        """
        Startup nudges an investor.

        Returns:
            The created nudge (pending, amount 0, currency VCR)
        """
        receiver_oid = to_object_id(receiver_id, "receiver ID")
        sender = self._require_type(sender_id, UserType.startup, "Only startups can send nudges")

        if sender_id == receiver_oid:
            raise ValidationError("Cannot send nudge to yourself")

        receiver = self.users.get(receiver_oid)
        if not receiver or receiver.get("userType") != UserType.investor.value:
            raise ValidationError("Receiver must be an investor")

        if sender.get("nudgeUsage", 0) >= sender.get("nudgeLimit", 0):
            raise QuotaExceededError("Nudge limit reached")

        existing_nudge = self.nudges.find_pair(sender_id, receiver_oid)
        if existing_nudge:
            raise ConflictError(f"Nudge already {existing_nudge['status']}")

        connection = self.connections.find_pair(sender_id, receiver_oid)
        if connection and connection["status"] == ConnectionStatus.rejected.value:
            raise ConflictError("Cannot nudge a rejected connection")

        created_nudge = None
        created_connection = None
        with mongo_transaction(self.db) as session:
            self._reserve_quota(sender, session=session)
            try:
                if connection is None:
                    connection = new_connection(sender_id, receiver_oid)
                    connection["_id"] = self.connections.insert(connection, session=session)
                    created_connection = connection["_id"]

                nudge = new_nudge(
                    sender_id, receiver_oid, connection["_id"], self.settings.interaction_ttl_days
                )
                nudge["_id"] = self.nudges.insert(nudge, session=session)
                created_nudge = nudge["_id"]

                self.connections.set_fields(connection["_id"], {"nudge": nudge["_id"]}, session=session)
            except Exception:
                if session is None:
                    self._undo_send(sender_id, created_nudge, created_connection)
                raise

        logger.info(
            "Nudge and connection sent",
            extra={"extra_fields": {
                "sender_id": str(sender_id),
                "receiver_id": str(receiver_oid),
                "nudge_id": str(nudge["_id"]),
                "connection_id": str(connection["_id"]),
            }},
        )

        self.notifier.notify(
            receiver_oid,
            NotificationType.investment,
            f"{(sender.get('profile') or {}).get('startup', {}).get('pitchTitle') or 'A startup'} nudged you",
            link=f"/nudges/{nudge['_id']}",
        )
        return serialize_doc(nudge)

    def update_nudge(self, nudge_id: str, receiver_id: ObjectId, status: str) -> dict:
        """
        Receiver answers a pending nudge. Accepting also accepts the linked
        connection; rejecting leaves the connection as it is.
        """
        nudge_oid = to_object_id(nudge_id, "nudge ID")
        if status not in TERMINAL_STATUSES:
            raise ValidationError("Invalid status value")

        with mongo_transaction(self.db) as session:
            nudge = self.nudges.get(nudge_oid, session=session, receiver=receiver_id)
            if not nudge:
                raise NotFoundError("Nudge not found or unauthorized")
            if nudge["status"] != InteractionStatus.pending.value:
                raise ConflictError("Nudge already processed")

            updated = self.nudges.transition(nudge_oid, receiver_id, status, session=session)
            if updated is None:
                raise ConflictError("Nudge already processed")

            connection = None
            if updated.get("connection"):
                if status == InteractionStatus.accepted.value:
                    self.connections.set_fields(
                        updated["connection"],
                        {"status": ConnectionStatus.accepted.value},
                        session=session,
                    )
                connection = self.connections.get(updated["connection"], session=session)

        logger.info(
            "Nudge updated",
            extra={"extra_fields": {"nudge_id": str(nudge_oid), "status": status}},
        )
        self.notifier.notify(
            updated["sender"],
            NotificationType.investment,
            f"Your nudge was {status}",
            link=f"/nudges/{nudge_oid}",
        )

        result = serialize_doc(updated)
        if connection is not None:
            result["connection"] = serialize_doc(connection)
        return result

    def buy_nudges(self, user_id: ObjectId, quantity: int) -> dict:
        """
        Add a nudge pack to a startup's quota.
        Payment collection happens elsewhere; this only raises nudgeLimit.
        """
        self._require_type(user_id, UserType.startup, "Only startups can buy nudges")

        cost = NUDGE_PRICES.get(quantity)
        if cost is None:
            raise ValidationError(
                f"Invalid nudge quantity (choose one of {', '.join(str(q) for q in NUDGE_PRICES)})"
            )

        user = self.users.add_nudge_credits(user_id, quantity)
        if not user:
            raise NotFoundError("User not found")

        logger.info(
            "Nudges purchased",
            extra={"extra_fields": {"user_id": str(user_id), "quantity": quantity, "cost": cost}},
        )
        return {"nudgeLimit": user["nudgeLimit"], "nudgeUsage": user.get("nudgeUsage", 0), "cost": cost}

    # ------------------------------------------------------------
    # queries
    # ------------------------------------------------------------

    def _populate(self, records: List[dict], party_field: str) -> List[dict]:
        """Replace the party id by a user summary and the connection id by the connection."""
        users = self.users.get_many(r[party_field] for r in records)
        results = []
        for record in records:
            doc = serialize_doc(record)
            doc[party_field] = counterpart_summary(users.get(record[party_field])) or str(record[party_field])
            if record.get("connection"):
                doc["connection"] = serialize_doc(self.connections.get(record["connection"]))
            results.append(doc)
        return results

    def get_nudges_sent_to_startup(self, user_id: ObjectId) -> List[dict]:
        """Nudges the startup is the receiver of, with sender and connection populated."""
        self._require_type(user_id, UserType.startup, "Only startups can view received nudges")
        self.expire_stale_nudges()

        nudges = self._populate(self.nudges.find({"receiver": user_id}), "sender")
        logger.debug(f"Nudges received for {user_id}: {len(nudges)}")
        return nudges

    def get_investor_nudge_and_connection_history(self, user_id: ObjectId) -> dict:
        """Nudges and connections the investor has sent."""
        self._require_type(
            user_id, UserType.investor, "Only investors can view nudge and connection history"
        )
        self.expire_stale_nudges()

        nudges = self._populate(self.nudges.find({"sender": user_id}), "receiver")

        connections = self.connections.find({"sender": user_id})
        receivers = self.users.get_many(c["receiver"] for c in connections)
        connection_docs = []
        for connection in connections:
            doc = serialize_doc(connection)
            doc["receiver"] = counterpart_summary(receivers.get(connection["receiver"])) or str(connection["receiver"])
            if connection.get("nudge"):
                doc["nudge"] = serialize_doc(self.nudges.get(connection["nudge"]))
            connection_docs.append(doc)

        logger.debug(
            f"Nudge and connection history for {user_id}: "
            f"{len(nudges)} nudges, {len(connection_docs)} connections"
        )
        return {"nudges": nudges, "connections": connection_docs}


def get_nudge_service(db: Optional[Database] = None) -> NudgeService:
    """Get nudge service instance."""
    return NudgeService(db)


# ============================================================
# CONNECTIONS
# ============================================================

CONNECTION_ANSWERS = (ConnectionStatus.accepted.value, ConnectionStatus.rejected.value)


class ConnectionService:
    """
    Investor-initiated connection requests.

    A connection exists at most once per (sender, receiver), whatever its
    status, so a rejected connection can never be re-sent.
    """

    def __init__(self, db: Optional[Database] = None, notifier: Optional[NotificationService] = None):
        self.db = db
        self.users = UserStore(db)
        self.connections = ConnectionStore(db)
        self.nudges = NudgeStore(db)
        self.notifier = notifier or NotificationService(db)

    def send_connection(self, sender_id: ObjectId, receiver_id: str) -> dict:
        receiver_oid = to_object_id(receiver_id, "receiver ID")

        sender = self.users.get(sender_id)
        if not sender or sender.get("userType") != UserType.investor.value:
            raise ForbiddenError("Only investors can send connections")
        if sender_id == receiver_oid:
            raise ValidationError("Cannot connect with yourself")

        receiver = self.users.get(receiver_oid)
        if not receiver or receiver.get("userType") != UserType.startup.value:
            raise ValidationError("Receiver must be a startup")

        existing = self.connections.find_pair(sender_id, receiver_oid)
        if existing:
            raise ConflictError(f"Connection already {existing['status']}")

        connection = new_connection(sender_id, receiver_oid)
        connection["_id"] = self.connections.insert(connection)

        logger.info(
            "Connection sent",
            extra={"extra_fields": {
                "sender_id": str(sender_id),
                "receiver_id": str(receiver_oid),
                "connection_id": str(connection["_id"]),
            }},
        )
        self.notifier.notify(
            receiver_oid,
            NotificationType.investment,
            f"{sender.get('firstName') or 'An investor'} wants to connect",
            link=f"/connections/{connection['_id']}",
        )
        return serialize_doc(connection)

    def update_connection(self, connection_id: str, receiver_id: ObjectId, status: str) -> dict:
        """
        Receiver accepts or rejects a pending connection.
        Accepting also accepts the linked nudge if it is still pending.
        """
        connection_oid = to_object_id(connection_id, "connection ID")
        if status not in CONNECTION_ANSWERS:
            raise ValidationError("Invalid status value")

        with mongo_transaction(self.db) as session:
            connection = self.connections.get(connection_oid, session=session, receiver=receiver_id)
            if not connection:
                raise NotFoundError("Connection not found or unauthorized")
            if connection["status"] != ConnectionStatus.pending.value:
                raise ConflictError(f"Connection already {connection['status']}")

            updated = self.connections.transition(connection_oid, receiver_id, status, session=session)
            if updated is None:
                raise ConflictError("Connection already processed")

            if status == ConnectionStatus.accepted.value and updated.get("nudge"):
                self.nudges.accept_if_pending(updated["nudge"], session=session)

        logger.info(
            "Connection updated",
            extra={"extra_fields": {"connection_id": str(connection_oid), "status": status}},
        )
        self.notifier.notify(
            updated["sender"],
            NotificationType.investment,
            f"Your connection request was {status}",
            link=f"/connections/{connection_oid}",
        )
        return serialize_doc(updated)

    def get_connections(self, user_id: ObjectId) -> List[dict]:
        """Investors see connections they sent, startups the ones they received."""
        user = self.users.get(user_id)
        user_type = user.get("userType") if user else None
        if user_type == UserType.investor.value:
            records, party = self.connections.find({"sender": user_id}), "receiver"
        elif user_type == UserType.startup.value:
            records, party = self.connections.find({"receiver": user_id}), "sender"
        else:
            raise ForbiddenError("Only investors and startups can view connections")

        others = self.users.get_many(r[party] for r in records)
        results = []
        for record in records:
            doc = serialize_doc(record)
            doc[party] = counterpart_summary(others.get(record[party])) or str(record[party])
            if record.get("nudge"):
                doc["nudge"] = serialize_doc(self.nudges.get(record["nudge"]))
            results.append(doc)
        return results


def get_connection_service(db: Optional[Database] = None) -> ConnectionService:
    """Get connection service instance."""
    return ConnectionService(db)
