"""Therapist domain schemas - Directory listings, client roster and approval"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

ApprovalDecision = Literal["approved", "rejected"]
ClientStatusFilter = Literal["all", "active", "inactive"]


class TherapistListing(BaseModel):
    """Therapist profile as shown in the directory"""

    id: str
    full_name: str
    profile_image_url: Optional[str] = None
    bio: Optional[str] = None
    hourly_rate: Optional[float] = None
    preferred_currency: str
    availability: list = []
    therapy_approaches: Optional[str] = None
    languages: Optional[str] = None
    session_formats: Optional[str] = None
    average_rating: float
    total_reviews: int
    approval_status: str


class TherapistClient(BaseModel):
    """A client the therapist has seen or is booked with"""

    id: str
    full_name: str
    email: Optional[str] = None
    profile_image_url: Optional[str] = None
    since: datetime
    next_session: Optional[datetime] = None
    total_sessions: int
    completed_sessions: int
    status: Literal["active", "inactive"]


class ApprovalUpdate(BaseModel):
    status: ApprovalDecision


class ApprovalResponse(BaseModel):
    id: str
    approval_status: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
