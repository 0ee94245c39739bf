"""Profile domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import require_text


class ProfileResponse(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: str
    profile_image_url: Optional[str] = None
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    profile_image_url: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        if v is None:
            return v
        return require_text(v, "Full name", min_length=2)


class SignOutResponse(BaseModel):
    success: bool
    closed_subscriptions: int
