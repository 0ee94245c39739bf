"""Onboarding router - Wizard step validation, submit and the therapist details procedure"""

import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import Profile
from .schemas import OnboardingSubmitResponse, StepValidationResponse, TherapistDetailsRequest
from .service import OnboardingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])
details_router = APIRouter(tags=["Onboarding"])


def get_onboarding_service(db: Session = Depends(get_db)) -> OnboardingService:
    """Dependency injection for OnboardingService"""
    return OnboardingService(db)


@router.post("/steps/{step}/validate", response_model=StepValidationResponse)
async def validate_onboarding_step(
    step: int,
    data: dict = Body(...),
    current_user: Profile = Depends(require_role("therapist")),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Validate only the given step's fields"""
    return service.check_step(step, data)


@router.post("/submit", response_model=OnboardingSubmitResponse)
async def submit_onboarding(
    payload: dict = Body(...),
    current_user: Profile = Depends(require_role("therapist")),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Validate all five steps plus terms acceptance and save in one transaction"""
    return service.submit(current_user, payload)


@details_router.post("/therapist-details")
async def save_therapist_details(
    data: TherapistDetailsRequest,
    current_user: Profile = Depends(require_role("therapist")),
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Insert or update the therapist's details in a single transaction"""
    try:
        service.save_details(current_user, data)
    except Exception as e:
        logger.error(f"❌ Error saving therapist details for {current_user.id}: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return {"success": True, "message": "Therapist details saved successfully"}
