"""Onboarding repository - Transactional writes for therapist profiles"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Profile, Therapist, TherapistDetails

logger = logging.getLogger(__name__)

DETAIL_FIELDS = (
    "education",
    "license_number",
    "license_type",
    "therapy_approaches",
    "languages",
    "insurance_info",
    "session_formats",
    "has_insurance",
    "preferred_currency",
)


class OnboardingRepository:
    """Repository for therapist onboarding writes"""

    @staticmethod
    def get_details(db: Session, therapist_id: str) -> Optional[TherapistDetails]:
        return (
            db.query(TherapistDetails)
            .filter(TherapistDetails.therapist_id == therapist_id)
            .first()
        )

    @staticmethod
    def stage_details(db: Session, therapist_id: str, **data) -> TherapistDetails:
        """Insert or update therapist_details without committing"""
        details = OnboardingRepository.get_details(db, therapist_id)
        if details is None:
            details = TherapistDetails(therapist_id=therapist_id)
            db.add(details)
        for key in DETAIL_FIELDS:
            if key in data and data[key] is not None:
                setattr(details, key, data[key])
        return details

    @staticmethod
    def stage_therapist(db: Session, therapist_id: str, **data) -> Therapist:
        """Insert or update the therapists row without committing"""
        therapist = db.get(Therapist, therapist_id)
        if therapist is None:
            therapist = Therapist(id=therapist_id)
            db.add(therapist)
        for key, value in data.items():
            setattr(therapist, key, value)
        return therapist

    @staticmethod
    def save_details(db: Session, therapist_id: str, **data) -> TherapistDetails:
        """Upsert therapist_details in one transaction"""
        try:
            details = OnboardingRepository.stage_details(db, therapist_id, **data)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(details)
        return details

    @staticmethod
    def save_onboarding(
        db: Session,
        profile: Profile,
        profile_data: dict,
        details_data: dict,
        therapist_data: dict,
    ) -> Therapist:
        """
        Write profile, therapist_details and therapists together.

        Everything is flushed in a single transaction: either all rows are
        written or none are.
        """
        try:
            for key, value in profile_data.items():
                setattr(profile, key, value)
            OnboardingRepository.stage_details(db, profile.id, **details_data)
            therapist = OnboardingRepository.stage_therapist(db, profile.id, **therapist_data)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(therapist)
        return therapist
