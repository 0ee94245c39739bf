"""Notification router - FastAPI endpoints for the notification center"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...services import notification_service
from ...services.aggregator import AggregationError
from .repository import NotificationRepository
from .schemas import (
    NotificationFilter,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])

_READ_FILTERS = {"all": None, "unread": False, "read": True}


def load_notifications(
    db: Session, user_id: str, filter: str = "all", search: Optional[str] = None
) -> NotificationListResponse:
    try:
        notifications = NotificationRepository.get_notifications(
            db, user_id, is_read=_READ_FILTERS[filter], search=search
        )
        unread_count = NotificationRepository.count_unread(db, user_id)
    except Exception as e:
        logger.error(f"❌ Failed to fetch notifications for {user_id}: {e}")
        raise AggregationError("notifications", e) from e
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    filter: NotificationFilter = Query("all"),
    search: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the current user's notifications, newest first"""
    return load_notifications(db, current_user.id, filter, search)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        unread_count = NotificationRepository.count_unread(db, current_user.id)
    except Exception as e:
        logger.error(f"❌ Failed to count unread notifications for {current_user.id}: {e}")
        raise AggregationError("unread count", e) from e
    return UnreadCountResponse(unread_count=unread_count)


@router.post("/read-all")
async def mark_all_notifications_read(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark every unread notification as read"""
    if not notification_service.mark_all_as_read(db, current_user.id):
        raise HTTPException(status_code=500, detail="Could not mark notifications as read")
    return {"success": True, "message": "All notifications marked as read"}


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not NotificationRepository.get_notification(db, notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")
    if not notification_service.mark_as_read(db, notification_id, current_user.id):
        raise HTTPException(status_code=500, detail="Could not mark notification as read")
    return {"success": True}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not NotificationRepository.get_notification(db, notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")
    if not notification_service.delete_notification(db, notification_id, current_user.id):
        raise HTTPException(status_code=500, detail="Could not delete notification")
    return {"success": True, "message": "Notification deleted"}
