"""Message domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import require_text


class MessageCreate(BaseModel):
    receiver_id: str
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return require_text(v, "Message")


class MessageResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationPartner(BaseModel):
    id: str
    full_name: str
    profile_image_url: Optional[str] = None


class ConversationSummary(BaseModel):
    """One entry per counterpart, built from the latest message exchanged"""

    partner: ConversationPartner
    last_message: str
    last_message_at: datetime
    unread_count: int
