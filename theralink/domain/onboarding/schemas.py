"""Onboarding domain schemas - Request/response models for the wizard"""

from typing import Optional

from pydantic import BaseModel


class StepValidationResponse(BaseModel):
    step: int
    valid: bool
    errors: dict[str, str]
    next_step: Optional[int] = None


class OnboardingSubmitResponse(BaseModel):
    success: bool
    message: str
    approval_status: str


class TherapistDetailsRequest(BaseModel):
    """Payload of the therapist details procedure"""

    education: str
    license_number: str
    license_type: str
    therapy_approaches: str
    languages: str
    session_formats: str
    insurance_info: Optional[str] = ""
    has_insurance: bool = False
    preferred_currency: Optional[str] = None
