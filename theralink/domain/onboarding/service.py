"""Onboarding service - Wizard validation and the transactional submit"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Profile, Therapist
from ...services import notification_service
from .repository import OnboardingRepository
from .schemas import TherapistDetailsRequest
from .wizard import TOTAL_STEPS, OnboardingWizard, StepValidationError, WizardError, validate_step

logger = logging.getLogger(__name__)

PAID_SUBMITTED = "Your therapist profile has been submitted for review."
COMMUNITY_SUBMITTED = (
    "Your community therapist profile has been submitted for review. "
    "Thank you for your generous commitment to helping others!"
)


class OnboardingService:
    """Service layer for therapist onboarding"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OnboardingRepository()

    def check_step(self, step: int, data: dict) -> dict:
        """Validate one step's fields; next_step is set when the step may advance"""
        try:
            errors = validate_step(step, data)
        except WizardError as e:
            raise HTTPException(status_code=404, detail=str(e))
        valid = not errors
        return {
            "step": step,
            "valid": valid,
            "errors": errors,
            "next_step": step + 1 if valid and step < TOTAL_STEPS else None,
        }

    def submit(self, therapist: Profile, payload: dict) -> dict:
        """Validate the whole wizard and persist it atomically"""
        wizard = OnboardingWizard(
            {k: v for k, v in payload.items() if k != "terms_accepted"}, step=TOTAL_STEPS
        )
        try:
            submission = wizard.submit(payload.get("terms_accepted", False))
        except StepValidationError as e:
            raise HTTPException(
                status_code=422, detail={"step": e.step, "errors": e.errors}
            )

        details_data = submission.model_dump(
            include={
                "education",
                "license_number",
                "license_type",
                "therapy_approaches",
                "languages",
                "insurance_info",
                "session_formats",
                "has_insurance",
                "preferred_currency",
            }
        )
        details_data["insurance_info"] = details_data.get("insurance_info") or ""
        therapist_data = {
            "bio": submission.bio,
            "hourly_rate": submission.hourly_rate,
            "preferred_currency": submission.preferred_currency,
            "availability": [day.model_dump() for day in submission.availability],
            "approval_status": "pending",
        }

        try:
            saved: Therapist = self.repo.save_onboarding(
                self.db,
                therapist,
                profile_data={"full_name": submission.full_name},
                details_data=details_data,
                therapist_data=therapist_data,
            )
        except Exception as e:
            logger.error(f"❌ Onboarding submit failed for {therapist.id}: {e}")
            raise HTTPException(
                status_code=500,
                detail="There was a problem saving your profile. Please try again.",
            )

        logger.info(
            f"✅ Onboarding submitted for {therapist.id} ({submission.therapist_type}, "
            f"{submission.preferred_currency})"
        )
        message = COMMUNITY_SUBMITTED if submission.therapist_type == "community" else PAID_SUBMITTED
        notification_service.dispatch(
            self.db,
            therapist.id,
            "Profile submitted",
            message,
            "system",
            action_url="/therapist/dashboard",
        )
        return {"success": True, "message": message, "approval_status": saved.approval_status}

    def save_details(self, therapist: Profile, data: TherapistDetailsRequest) -> None:
        details = data.model_dump(exclude_none=True)
        details["insurance_info"] = details.get("insurance_info") or ""
        self.repo.save_details(self.db, therapist.id, **details)
        logger.info(f"✅ Therapist details saved for {therapist.id}")
