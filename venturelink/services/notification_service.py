"""
Notification Service

Lifecycle engines call notify() when a request is created or changes status.
A notification is a side effect: if storing it fails the error is logged and
the primary operation still succeeds.
"""

import logging
from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database

from venturelink.core.errors import NotFoundError
from venturelink.models.interaction import NotificationType, new_notification
from venturelink.services.mongo_service import NotificationStore, serialize_doc, serialize_docs

logger = logging.getLogger(__name__)


class NotificationService:
    """Stores and serves per-user notifications."""

    def __init__(self, db: Optional[Database] = None):
        self.store = NotificationStore(db)

    def notify(
        self,
        user_id: ObjectId,
        notification_type: NotificationType,
        message: str,
        link: Optional[str] = None,
    ) -> Optional[dict]:
        """Create a notification; never raises."""
        try:
            doc = new_notification(user_id, notification_type, message, link)
            doc["_id"] = self.store.insert(doc)
            return doc
        except Exception:
            logger.exception(
                "Failed to create notification",
                extra={"extra_fields": {"user_id": str(user_id), "type": notification_type.value}},
            )
            return None

    def get_notifications(self, user_id: ObjectId) -> List[dict]:
        """Newest first."""
        return serialize_docs(self.store.list_for_user(user_id))

    def mark_as_read(self, notification_id: ObjectId, user_id: ObjectId) -> dict:
        doc = self.store.mark_read(notification_id, user_id)
        if not doc:
            raise NotFoundError("Notification not found")
        return serialize_doc(doc)


def get_notification_service(db: Optional[Database] = None) -> NotificationService:
    """Get notification service instance."""
    return NotificationService(db)
