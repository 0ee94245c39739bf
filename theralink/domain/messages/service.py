"""Message service - Conversations, threads and sending"""

import logging
from collections import OrderedDict

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Message, Profile
from ...services import notification_service
from ...services.aggregator import (
    UNKNOWN_CLIENT,
    UNKNOWN_THERAPIST,
    AggregationError,
    Lookup,
    aggregate,
    fetch_profiles,
    profile_summary,
)
from .repository import MessageRepository
from .schemas import MessageCreate

logger = logging.getLogger(__name__)

THREAD_LIMIT = 50


def partner_default_name(user: Profile) -> str:
    """Therapists talk to clients; everyone else talks to therapists"""
    return UNKNOWN_CLIENT if user.role == "therapist" else UNKNOWN_THERAPIST


class MessageService:
    """Service layer for messaging business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessageRepository()

    def conversations(self, user: Profile) -> list[dict]:
        """
        One entry per counterpart, ordered by latest message desc.

        unread_count counts messages received from that counterpart which
        the user has not read yet.
        """
        latest: "OrderedDict[str, Message]" = OrderedDict()
        unread: dict[str, int] = {}

        def primary():
            for message in self.repo.get_user_messages(self.db, user.id):
                partner_id = message.receiver_id if message.sender_id == user.id else message.sender_id
                latest.setdefault(partner_id, message)
                if message.receiver_id == user.id and not message.is_read:
                    unread[partner_id] = unread.get(partner_id, 0) + 1
            return list(latest.items())

        default_name = partner_default_name(user)

        def build(entry, resolved: dict) -> dict:
            partner_id, message = entry
            return {
                "partner": {"id": partner_id, **profile_summary(resolved["partner"], default_name)},
                "last_message": message.content,
                "last_message_at": message.created_at,
                "unread_count": unread.get(partner_id, 0),
            }

        return aggregate(
            "conversations",
            primary,
            [Lookup("partner", key=lambda entry: entry[0], fetch=fetch_profiles(self.db))],
            build,
        )

    def thread(self, user: Profile, partner_id: str) -> list[Message]:
        """Last messages with a partner, oldest first; incoming ones are marked read"""
        try:
            messages = self.repo.get_thread(self.db, user.id, partner_id, THREAD_LIMIT)
        except Exception as e:
            logger.error(f"❌ Failed to fetch thread {user.id} <-> {partner_id}: {e}")
            raise AggregationError("messages", e) from e

        incoming = [m for m in messages if m.receiver_id == user.id and not m.is_read]
        if incoming:
            try:
                self.repo.mark_read(self.db, incoming)
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Failed to mark messages as read for {user.id}: {e}")
        return messages

    def send(self, data: MessageCreate, sender: Profile) -> Message:
        if data.receiver_id == sender.id:
            raise HTTPException(status_code=400, detail="Cannot send a message to yourself")

        receiver = self.repo.get_profile(self.db, data.receiver_id)
        if not receiver:
            raise HTTPException(status_code=404, detail="Recipient not found")

        message = self.repo.create_message(
            self.db,
            sender_id=sender.id,
            receiver_id=receiver.id,
            content=data.content,
            is_read=False,
        )
        logger.info(f"💬 Message {message.id} sent from {sender.id} to {receiver.id}")

        sender_name = sender.full_name or sender.email
        action_url = "/therapist/messages" if receiver.role == "therapist" else "/client/messages"
        notification_service.dispatch(
            self.db,
            receiver.id,
            f"New message from {sender_name}",
            data.content[:100],
            "message",
            action_url=action_url,
        )
        return message
