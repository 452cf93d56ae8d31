"""
Notification Routes

GET /notifications - Own notifications, newest first
PUT /notifications/{notification_id}/read - Mark one as read
"""

from fastapi import APIRouter, Depends
from pymongo.database import Database

from venturelink.core.auth import get_current_user
from venturelink.db.mongodb import get_database
from venturelink.schemas.schemas import ApiResponse, ok
from venturelink.services.mongo_service import to_object_id
from venturelink.services.notification_service import NotificationService, get_notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_service(db: Database = Depends(get_database)) -> NotificationService:
    return get_notification_service(db)


@router.get("", response_model=ApiResponse)
async def get_notifications(
    user: dict = Depends(get_current_user),
    service: NotificationService = Depends(get_service),
):
    return ok(service.get_notifications(user["_id"]), "Notifications retrieved successfully")


@router.put("/{notification_id}/read", response_model=ApiResponse)
async def mark_as_read(
    notification_id: str,
    user: dict = Depends(get_current_user),
    service: NotificationService = Depends(get_service),
):
    notification = service.mark_as_read(to_object_id(notification_id, "notification ID"), user["_id"])
    return ok(notification, "Notification marked as read")
