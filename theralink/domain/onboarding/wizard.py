"""
Therapist onboarding wizard

Five linear steps. Moving forward validates only the current step's fields;
moving back is always allowed. Submitting is only possible from the last
step, re-validates every step and requires the terms to be accepted.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from ...shared.validators import require_text

TOTAL_STEPS = 5

SUPPORTED_CURRENCIES = ("NGN", "USD", "EUR", "GBP", "KES", "GHS", "ZAR")

TERMS_REQUIRED = "You must accept the terms and conditions."


class AvailabilityDay(BaseModel):
    date: str
    slots: list[str] = []


class ProfileStep(BaseModel):
    full_name: str
    bio: str

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v):
        return require_text(v, "Full name", min_length=2)

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, v):
        return require_text(v, "Bio", min_length=50)


class CredentialsStep(BaseModel):
    education: str
    license_number: str
    license_type: str

    @field_validator("education")
    @classmethod
    def validate_education(cls, v):
        return require_text(v, "Education", min_length=10)

    @field_validator("license_number")
    @classmethod
    def validate_license_number(cls, v):
        return require_text(v, "License number", min_length=3)

    @field_validator("license_type")
    @classmethod
    def validate_license_type(cls, v):
        return require_text(v, "License type", min_length=3)


class PracticeStep(BaseModel):
    therapy_approaches: str
    languages: str
    session_formats: str
    insurance_info: Optional[str] = ""
    has_insurance: bool = False

    @field_validator("therapy_approaches")
    @classmethod
    def validate_approaches(cls, v):
        return require_text(v, "Therapy approaches", min_length=10)

    @field_validator("languages")
    @classmethod
    def validate_languages(cls, v):
        return require_text(v, "Languages", min_length=3)

    @field_validator("session_formats")
    @classmethod
    def validate_session_formats(cls, v):
        return require_text(v, "Session formats", min_length=3)


class RatesStep(BaseModel):
    therapist_type: Literal["paid", "community"]
    preferred_currency: str = "NGN"
    hourly_rate: Optional[float] = Field(None, validate_default=True)

    @field_validator("preferred_currency")
    @classmethod
    def validate_currency(cls, v):
        v = (v or "").strip().upper()
        if v not in SUPPORTED_CURRENCIES:
            raise ValueError("Please select your preferred currency.")
        return v

    @field_validator("hourly_rate")
    @classmethod
    def check_rate(cls, v, info: ValidationInfo):
        therapist_type = info.data.get("therapist_type")
        if therapist_type == "community":
            # Community therapists volunteer their time
            return 0.0
        if therapist_type == "paid" and (v is None or v <= 0):
            raise ValueError("Hourly rate must be greater than 0 for paid therapists")
        return v


class AvailabilityStep(BaseModel):
    availability: list[AvailabilityDay]

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, v):
        v = [day for day in v if day.slots]
        if not v:
            raise ValueError("Please select at least one available slot.")
        return v


STEP_MODELS = {
    1: ProfileStep,
    2: CredentialsStep,
    3: PracticeStep,
    4: RatesStep,
    5: AvailabilityStep,
}


class OnboardingSubmission(ProfileStep, CredentialsStep, PracticeStep, RatesStep, AvailabilityStep):
    """All five steps' fields, validated together"""


class WizardError(Exception):
    """Invalid wizard transition (e.g. submitting before the last step)"""


class StepValidationError(Exception):
    def __init__(self, step: int, errors: dict):
        self.step = step
        self.errors = errors
        super().__init__(f"Step {step} is invalid: {', '.join(errors)}")


def _field_errors(error: ValidationError) -> dict:
    errors = {}
    for err in error.errors():
        field = ".".join(str(p) for p in err["loc"]) or "__all__"
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


def validate_step(step: int, data: dict) -> dict:
    """Field errors for one step ({} when valid); other steps' fields are ignored"""
    if step not in STEP_MODELS:
        raise WizardError(f"Unknown onboarding step: {step}")
    try:
        STEP_MODELS[step].model_validate(data)
    except ValidationError as e:
        return _field_errors(e)
    return {}


class OnboardingWizard:
    """Linear five-step form state machine"""

    def __init__(self, data: Optional[dict] = None, step: int = 1):
        if step not in STEP_MODELS:
            raise WizardError(f"Unknown onboarding step: {step}")
        self.step = step
        self.data = dict(data or {})

    def update(self, **fields) -> None:
        self.data.update(fields)

    def validate_step(self, step: Optional[int] = None) -> dict:
        return validate_step(step or self.step, self.data)

    def next(self) -> int:
        """Advance one step if the current step's fields are valid"""
        if self.step == TOTAL_STEPS:
            raise WizardError("Already on the last step; submit instead")
        errors = self.validate_step()
        if errors:
            raise StepValidationError(self.step, errors)
        self.step += 1
        return self.step

    def back(self) -> int:
        if self.step > 1:
            self.step -= 1
        return self.step

    def submit(self, terms_accepted: bool) -> OnboardingSubmission:
        """Validate every step and return the combined submission"""
        if self.step != TOTAL_STEPS:
            raise WizardError("Onboarding can only be submitted from the last step")

        for step in STEP_MODELS:
            errors = self.validate_step(step)
            if errors:
                raise StepValidationError(step, errors)

        if terms_accepted is not True:
            raise StepValidationError(TOTAL_STEPS, {"terms_accepted": TERMS_REQUIRED})

        return OnboardingSubmission.model_validate(self.data)
