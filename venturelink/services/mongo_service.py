"""
MongoDB Service - CRUD operations for document collections.

Collections in this database:
1. users          - Accounts with a per-type profile sub-document
2. interactions   - Investor <-> startup requests (pending -> terminal)
3. connections    - Bilateral requests, one per pair forever
4. nudges         - Startup -> investor outreach, paired with a connection
5. notifications  - Inbox entries fired by lifecycle events

The lifecycle engines never touch pymongo directly; they go through the
stores below so that every conditional update lives in one place.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from venturelink.core.errors import ConflictError, ValidationError
from venturelink.db.mongodb import COLLECTIONS, get_collection
from venturelink.models.interaction import LIVE_STATUSES, ConnectionStatus, InteractionStatus


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document (ids included) to JSON-serializable dict."""
    if doc is None:
        return None
    return _serialize_value(doc)


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def to_object_id(value: Any, label: str = "ID") -> ObjectId:
    """Parse an id coming from the outside world; raise ValidationError if malformed."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label}")
    return ObjectId(value)


# ============================================================
# BASE STORE
# ============================================================

class DocumentStore:
    """
    Thin wrapper over one collection.
    Every write accepts an optional session so callers can group writes
    into a transaction (see venturelink.db.mongodb.mongo_transaction).
    """

    collection_name: str = None

    def __init__(self, db: Optional[Database] = None):
        self.collection: Collection = get_collection(COLLECTIONS[self.collection_name], db)

    def insert(self, doc: dict, session=None) -> ObjectId:
        """Insert a document and return its ObjectId (duplicates -> ConflictError)."""
        try:
            result = self.collection.insert_one(doc, session=session)
        except DuplicateKeyError:
            raise ConflictError(f"Duplicate {self.collection_name[:-1]}")
        return result.inserted_id

    def get(self, doc_id: ObjectId, session=None, **scope) -> Optional[dict]:
        """Fetch one document by id, optionally scoped by extra equality filters."""
        query = {"_id": doc_id, **scope}
        return self.collection.find_one(query, session=session)

    def find_one(self, query: dict, session=None) -> Optional[dict]:
        return self.collection.find_one(query, session=session)

    def find(self, query: dict, newest_first: bool = True) -> List[dict]:
        cursor = self.collection.find(query)
        if newest_first:
            cursor = cursor.sort("createdAt", DESCENDING)
        return list(cursor)

    def set_fields(self, doc_id: ObjectId, fields: dict, session=None) -> bool:
        fields = {**fields, "updatedAt": datetime.utcnow()}
        result = self.collection.update_one({"_id": doc_id}, {"$set": fields}, session=session)
        return result.matched_count > 0

    def delete(self, doc_id: ObjectId, session=None) -> bool:
        result = self.collection.delete_one({"_id": doc_id}, session=session)
        return result.deleted_count > 0

    def delete_involving(self, user_id: ObjectId, session=None) -> int:
        """Delete every record where the user is sender or receiver."""
        result = self.collection.delete_many(
            {"$or": [{"sender": user_id}, {"receiver": user_id}]}, session=session
        )
        return result.deleted_count


class ExpiringStore(DocumentStore):
    """Store for records with a pending -> terminal lifecycle and an expiresAt."""

    def transition(
        self,
        doc_id: ObjectId,
        receiver_id: ObjectId,
        new_status: str,
        session=None,
    ) -> Optional[dict]:
        """
        Move a pending record owned by receiver_id to new_status.

        The filter includes status == pending, so of two concurrent
        transitions only one matches. Returns the updated document, or None
        when nothing matched.
        """
        return self.collection.find_one_and_update(
            {"_id": doc_id, "receiver": receiver_id, "status": InteractionStatus.pending.value},
            {"$set": {"status": new_status, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
            session=session,
        )

    def accept_if_pending(self, doc_id: ObjectId, session=None) -> bool:
        """Cascade target: accept the record unless it already left pending."""
        result = self.collection.update_one(
            {"_id": doc_id, "status": InteractionStatus.pending.value},
            {"$set": {"status": InteractionStatus.accepted.value, "updatedAt": datetime.utcnow()}},
            session=session,
        )
        return result.modified_count == 1

    def expire_stale(self, now: Optional[datetime] = None) -> int:
        """
        Materialize expiry: every pending record whose expiresAt has passed
        becomes expired. Idempotent; a no-op when nothing matches.
        """
        now = now or datetime.utcnow()
        result = self.collection.update_many(
            {"status": InteractionStatus.pending.value, "expiresAt": {"$lte": now}},
            {"$set": {"status": InteractionStatus.expired.value, "updatedAt": now}},
        )
        return result.modified_count


# ============================================================
# USERS COLLECTION
# ============================================================

# Never hand the credential hash to callers
_PUBLIC_USER = {"password": 0}


class UserStore(DocumentStore):
    """
    Handles user accounts and the startup nudge quota.
    """

    collection_name = "users"

    def get(self, doc_id: ObjectId, session=None, **scope) -> Optional[dict]:
        query = {"_id": doc_id, **scope}
        return self.collection.find_one(query, _PUBLIC_USER, session=session)

    def get_many(self, ids: Iterable[ObjectId]) -> Dict[ObjectId, dict]:
        """Fetch several users at once, keyed by id. Missing ids are simply absent."""
        ids = list({i for i in ids if i is not None})
        if not ids:
            return {}
        cursor = self.collection.find({"_id": {"$in": ids}}, _PUBLIC_USER)
        return {doc["_id"]: doc for doc in cursor}

    def find(self, query: dict, newest_first: bool = False) -> List[dict]:
        cursor = self.collection.find(query, _PUBLIC_USER)
        if newest_first:
            cursor = cursor.sort("createdAt", DESCENDING)
        return list(cursor)

    def set_profile(self, user_id: ObjectId, user_type: str, profile_doc: dict) -> Optional[dict]:
        """Replace the sub-profile for the user's type and return the updated user."""
        return self.collection.find_one_and_update(
            {"_id": user_id, "userType": user_type},
            {"$set": {f"profile.{user_type}": profile_doc, "updatedAt": datetime.utcnow()}},
            projection=_PUBLIC_USER,
            return_document=ReturnDocument.AFTER,
        )

    def reserve_nudge(self, user_id: ObjectId, seen_usage: int, session=None) -> bool:
        """
        Consume one nudge, compare-and-set style.

        Succeeds only if nudgeUsage still equals the value the caller read
        and is below nudgeLimit, so two concurrent sends cannot both pass
        the quota check.
        """
        result = self.collection.update_one(
            {"_id": user_id, "nudgeUsage": seen_usage, "nudgeLimit": {"$gt": seen_usage}},
            {"$inc": {"nudgeUsage": 1}, "$set": {"updatedAt": datetime.utcnow()}},
            session=session,
        )
        return result.modified_count == 1

    def release_nudge(self, user_id: ObjectId) -> bool:
        """Give back a reserved nudge (compensation after a failed send)."""
        result = self.collection.update_one(
            {"_id": user_id, "nudgeUsage": {"$gt": 0}},
            {"$inc": {"nudgeUsage": -1}},
        )
        return result.modified_count == 1

    def add_nudge_credits(self, user_id: ObjectId, quantity: int) -> Optional[dict]:
        """Increase nudgeLimit atomically and return the updated user."""
        return self.collection.find_one_and_update(
            {"_id": user_id},
            {"$inc": {"nudgeLimit": quantity}, "$set": {"updatedAt": datetime.utcnow()}},
            projection=_PUBLIC_USER,
            return_document=ReturnDocument.AFTER,
        )


# ============================================================
# INTERACTIONS / CONNECTIONS / NUDGES
# ============================================================

class InteractionStore(ExpiringStore):
    """Investor <-> startup interaction requests."""

    collection_name = "interactions"

    def find_live(self, sender_id: ObjectId, receiver_id: ObjectId) -> Optional[dict]:
        """The pending or accepted interaction for this ordered pair, if any."""
        return self.collection.find_one({
            "sender": sender_id,
            "receiver": receiver_id,
            "status": {"$in": LIVE_STATUSES},
        })


class ConnectionStore(DocumentStore):
    """Connection requests; unique per (sender, receiver) regardless of status."""

    collection_name = "connections"

    def find_pair(self, sender_id: ObjectId, receiver_id: ObjectId, session=None) -> Optional[dict]:
        return self.collection.find_one(
            {"sender": sender_id, "receiver": receiver_id}, session=session
        )

    def transition(
        self,
        doc_id: ObjectId,
        receiver_id: ObjectId,
        new_status: str,
        session=None,
    ) -> Optional[dict]:
        """Move a pending connection to new_status (single transition)."""
        return self.collection.find_one_and_update(
            {"_id": doc_id, "receiver": receiver_id, "status": ConnectionStatus.pending.value},
            {"$set": {"status": new_status, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
            session=session,
        )


class NudgeStore(ExpiringStore):
    """Nudges sent by startups to investors."""

    collection_name = "nudges"

    def find_pair(self, sender_id: ObjectId, receiver_id: ObjectId, session=None) -> Optional[dict]:
        return self.collection.find_one(
            {"sender": sender_id, "receiver": receiver_id}, session=session
        )


# ============================================================
# NOTIFICATIONS COLLECTION
# ============================================================

class NotificationStore(DocumentStore):
    """Per-user notification inbox."""

    collection_name = "notifications"

    def list_for_user(self, user_id: ObjectId) -> List[dict]:
        return self.find({"userId": user_id})

    def mark_read(self, notification_id: ObjectId, user_id: ObjectId) -> Optional[dict]:
        return self.collection.find_one_and_update(
            {"_id": notification_id, "userId": user_id},
            {"$set": {"read": True, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def delete_for_user(self, user_id: ObjectId, session=None) -> int:
        return self.collection.delete_many({"userId": user_id}, session=session).deleted_count
