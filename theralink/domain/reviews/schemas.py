"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ReviewCreate(BaseModel):
    therapist_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v):
        if v is None:
            return v
        return v.strip() or None


class ReviewView(BaseModel):
    id: str
    client_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    client_name: str


class ReviewResponse(BaseModel):
    id: str
    client_id: str
    therapist_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReviewSummary(BaseModel):
    """Therapist's reviews, newest first, with rating aggregates"""

    reviews: list[ReviewView]
    average_rating: float
    total_reviews: int
    distribution: dict[int, int]
