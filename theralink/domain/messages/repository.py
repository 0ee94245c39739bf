"""Message repository - Database operations for direct messages"""

from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import Message, Profile


class MessageRepository:
    """Repository for message database operations"""

    @staticmethod
    def get_user_messages(db: Session, user_id: str) -> list[Message]:
        """All messages sent or received by the user, newest first"""
        return (
            db.query(Message)
            .filter(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .all()
        )

    @staticmethod
    def get_thread(db: Session, user_id: str, partner_id: str, limit: int = 50) -> list[Message]:
        """The latest `limit` messages between two users, oldest first"""
        latest = (
            db.query(Message)
            .filter(
                or_(
                    and_(Message.sender_id == user_id, Message.receiver_id == partner_id),
                    and_(Message.sender_id == partner_id, Message.receiver_id == user_id),
                )
            )
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(latest))

    @staticmethod
    def get_received(db: Session, user_id: str, limit: int = 5) -> list[Message]:
        return (
            db.query(Message)
            .filter(Message.receiver_id == user_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark_read(db: Session, messages: list[Message]) -> int:
        """Flip is_read row by row so each update reaches the change feed"""
        for message in messages:
            message.is_read = True
        db.commit()
        return len(messages)

    @staticmethod
    def get_profile(db: Session, profile_id: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.id == profile_id).first()

    @staticmethod
    def create_message(db: Session, **data) -> Message:
        message = Message(**data)
        db.add(message)
        db.commit()
        db.refresh(message)
        return message
