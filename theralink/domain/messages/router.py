"""Message router - FastAPI endpoints for direct messaging"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from .schemas import ConversationSummary, MessageCreate, MessageResponse
from .service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    """Dependency injection for MessageService"""
    return MessageService(db)


def load_conversations(db: Session, user: Profile) -> list[dict]:
    """Conversation list view model (also served over the realtime stream)"""
    return [
        ConversationSummary.model_validate(c).model_dump(mode="json")
        for c in MessageService(db).conversations(user)
    ]


@router.get("/conversations", response_model=list[ConversationSummary])
async def get_conversations(
    current_user: Profile = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    """Get one entry per counterpart with the latest message and unread count"""
    return service.conversations(current_user)


@router.get("/conversations/{partner_id}", response_model=list[MessageResponse])
async def get_thread(
    partner_id: str,
    current_user: Profile = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    """Get the latest messages with a partner and mark incoming ones read"""
    return service.thread(current_user, partner_id)


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    data: MessageCreate,
    current_user: Profile = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return service.send(data, current_user)
