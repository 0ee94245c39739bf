"""Notification repository - Database operations for notifications"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Notification


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def get_notifications(
        db: Session,
        user_id: str,
        is_read: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> list[Notification]:
        """Get a user's notifications, newest first"""
        query = db.query(Notification).filter(Notification.user_id == user_id)

        if is_read is not None:
            query = query.filter(Notification.is_read == is_read)

        if search:
            search_term = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(Notification.title).like(search_term),
                    func.lower(Notification.message).like(search_term),
                )
            )

        return query.order_by(Notification.created_at.desc()).all()

    @staticmethod
    def get_notification(db: Session, notification_id: str, user_id: str) -> Optional[Notification]:
        return (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )

    @staticmethod
    def count_unread(db: Session, user_id: str) -> int:
        return (
            db.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .scalar()
            or 0
        )

    @staticmethod
    def create_notification(db: Session, **data) -> Notification:
        notification = Notification(**data)
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_read(db: Session, notifications: list[Notification]) -> None:
        # Row-level updates so each change reaches the change feed
        for notification in notifications:
            notification.is_read = True
        db.commit()

    @staticmethod
    def delete_notification(db: Session, notification: Notification) -> None:
        db.delete(notification)
        db.commit()
