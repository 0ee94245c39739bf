"""
Notification Dispatcher
Writes notification records and raises toast events for the recipient.
Every operation catches its own failures and reports a success flag;
callers must not assume the notification was persisted.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.notifications.repository import NotificationRepository
from .change_feed import ChangeFeed, get_change_feed

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("appointment", "message", "review", "session_note", "payment", "system")


def create_notification(
    db: Session,
    user_id: str,
    title: str,
    message: str,
    notification_type: str,
    action_url: Optional[str] = None,
) -> bool:
    """Insert an unread notification for a user"""
    try:
        NotificationRepository.create_notification(
            db,
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            action_url=action_url,
            is_read=False,
        )
        logger.info(f"🔔 {notification_type} notification created for user {user_id}")
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error creating notification for user {user_id}: {e}")
        return False


def mark_as_read(db: Session, notification_id: str, user_id: str) -> bool:
    """Flip one of the user's notifications to read"""
    try:
        notification = NotificationRepository.get_notification(db, notification_id, user_id)
        if not notification:
            logger.warning(f"⚠️ Notification {notification_id} not found for user {user_id}")
            return False
        NotificationRepository.mark_read(db, [notification])
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error marking notification {notification_id} as read: {e}")
        return False


def mark_all_as_read(db: Session, user_id: str) -> bool:
    """Flip every unread notification of the user to read"""
    try:
        unread = NotificationRepository.get_notifications(db, user_id, is_read=False)
        if unread:
            NotificationRepository.mark_read(db, unread)
        logger.info(f"✅ Marked {len(unread)} notification(s) as read for user {user_id}")
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error marking notifications as read for user {user_id}: {e}")
        return False


def delete_notification(db: Session, notification_id: str, user_id: str) -> bool:
    try:
        notification = NotificationRepository.get_notification(db, notification_id, user_id)
        if not notification:
            return False
        NotificationRepository.delete_notification(db, notification)
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error deleting notification {notification_id}: {e}")
        return False


def dispatch(
    db: Session,
    user_id: str,
    title: str,
    message: str,
    notification_type: str,
    action_url: Optional[str] = None,
    feed: Optional[ChangeFeed] = None,
) -> bool:
    """
    Persist a notification and raise a toast for the recipient.

    The toast is raised whether or not the insert succeeded.

    Returns:
        True when the notification record was persisted
    """
    persisted = create_notification(db, user_id, title, message, notification_type, action_url)

    try:
        (feed or get_change_feed()).toast(user_id, title, message, action_url)
    except Exception as e:
        logger.error(f"❌ Failed to raise toast for user {user_id}: {e}")

    return persisted
