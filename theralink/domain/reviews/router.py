"""Review router - FastAPI endpoints for therapist reviews"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import Profile
from .schemas import ReviewCreate, ReviewResponse, ReviewSummary
from .service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


@router.get("", response_model=ReviewSummary)
async def get_my_reviews(
    current_user: Profile = Depends(require_role("therapist")),
    service: ReviewService = Depends(get_review_service),
):
    """Reviews about the current therapist with average and distribution"""
    return service.therapist_reviews(current_user)


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(
    data: ReviewCreate,
    current_user: Profile = Depends(require_role("client")),
    service: ReviewService = Depends(get_review_service),
):
    return service.create_review(data, current_user)
