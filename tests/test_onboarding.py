"""
Tests for the therapist onboarding wizard and its transactional submit
"""

from unittest.mock import patch

import pytest

from theralink.domain.onboarding.wizard import (
    TERMS_REQUIRED,
    OnboardingWizard,
    StepValidationError,
    WizardError,
    validate_step,
)
from theralink.models import Profile, Therapist, TherapistDetails

VALID_DATA = {
    "full_name": "Dr. Ada Obi",
    "bio": "Licensed counsellor focused on anxiety and grief support for adults.",
    "education": "MSc Clinical Psychology, University of Lagos",
    "license_number": "LIC-2041",
    "license_type": "Clinical Psychologist",
    "therapy_approaches": "CBT, mindfulness-based therapy",
    "languages": "English, Yoruba",
    "session_formats": "video, audio",
    "insurance_info": "",
    "has_insurance": False,
    "therapist_type": "paid",
    "preferred_currency": "NGN",
    "hourly_rate": 15000,
    "availability": [{"date": "2025-06-02", "slots": ["09:00", "10:00"]}],
}


class TestStepValidation:
    """Tests for per-step validation"""

    def test_bio_minimum_length(self):
        data = {"full_name": "Ada", "bio": "x" * 49}
        assert validate_step(1, data) == {"bio": "Bio must be at least 50 characters"}

        data["bio"] = "x" * 50
        assert validate_step(1, data) == {}

    def test_only_current_step_is_checked(self):
        # Step 2 fields are empty but step 1 is valid
        assert validate_step(1, {"full_name": "Ada", "bio": "y" * 60}) == {}

    def test_paid_rate_must_be_positive(self):
        errors = validate_step(4, {"therapist_type": "paid", "preferred_currency": "USD", "hourly_rate": 0})
        assert "hourly_rate" in errors

    def test_unsupported_currency(self):
        errors = validate_step(4, {"therapist_type": "paid", "preferred_currency": "JPY", "hourly_rate": 10})
        assert errors == {"preferred_currency": "Please select your preferred currency."}

    def test_availability_needs_a_slot(self):
        errors = validate_step(5, {"availability": [{"date": "2025-06-02", "slots": []}]})
        assert errors == {"availability": "Please select at least one available slot."}

    def test_unknown_step(self):
        with pytest.raises(WizardError):
            validate_step(6, {})


class TestOnboardingWizard:
    """Tests for wizard navigation and submit"""

    def test_next_blocks_on_invalid_step(self):
        wizard = OnboardingWizard({"full_name": "Ada", "bio": "short"})

        with pytest.raises(StepValidationError) as exc_info:
            wizard.next()

        assert exc_info.value.step == 1
        assert "bio" in exc_info.value.errors
        assert wizard.step == 1

    def test_walk_forward_and_back(self):
        wizard = OnboardingWizard(VALID_DATA)
        for expected in (2, 3, 4, 5):
            assert wizard.next() == expected
        assert wizard.back() == 4
        assert OnboardingWizard().back() == 1

    def test_submit_only_from_last_step(self):
        wizard = OnboardingWizard(VALID_DATA, step=3)
        with pytest.raises(WizardError):
            wizard.submit(True)

    def test_submit_requires_terms(self):
        wizard = OnboardingWizard(VALID_DATA, step=5)
        with pytest.raises(StepValidationError) as exc_info:
            wizard.submit(False)
        assert exc_info.value.errors == {"terms_accepted": TERMS_REQUIRED}

    def test_submit_revalidates_earlier_steps(self):
        wizard = OnboardingWizard({**VALID_DATA, "license_number": "1"}, step=5)
        with pytest.raises(StepValidationError) as exc_info:
            wizard.submit(True)
        assert exc_info.value.step == 2

    def test_community_rate_forced_to_zero(self):
        data = {**VALID_DATA, "therapist_type": "community", "hourly_rate": 5000}
        submission = OnboardingWizard(data, step=5).submit(True)
        assert submission.hourly_rate == 0.0


class TestOnboardingEndpoints:
    """Tests for /onboarding and /therapist-details"""

    def test_step_endpoint(self, api, login, therapist):
        login(therapist)

        bad = api.post("/onboarding/steps/1/validate", json={"full_name": "A", "bio": "x" * 50}).json()
        assert bad["valid"] is False
        assert bad["next_step"] is None
        assert bad["errors"] == {"full_name": "Full name must be at least 2 characters"}

        good = api.post("/onboarding/steps/1/validate", json={"full_name": "Ada", "bio": "x" * 50}).json()
        assert good == {"step": 1, "valid": True, "errors": {}, "next_step": 2}

    def test_unknown_step_endpoint(self, api, login, therapist):
        login(therapist)
        assert api.post("/onboarding/steps/9/validate", json={}).status_code == 404

    def test_submit_writes_all_rows(self, api, login, db, therapist):
        login(therapist)

        response = api.post("/onboarding/submit", json={**VALID_DATA, "terms_accepted": True})

        assert response.status_code == 200
        assert response.json()["approval_status"] == "pending"
        saved = db.get(Therapist, "therapist1")
        assert saved.hourly_rate == 15000
        assert saved.availability == [{"date": "2025-06-02", "slots": ["09:00", "10:00"]}]
        details = db.query(TherapistDetails).filter(TherapistDetails.therapist_id == "therapist1").one()
        assert details.license_number == "LIC-2041"

    def test_submit_without_terms(self, api, login, db, therapist):
        login(therapist)

        response = api.post("/onboarding/submit", json=VALID_DATA)

        assert response.status_code == 422
        assert response.json()["detail"] == {"step": 5, "errors": {"terms_accepted": TERMS_REQUIRED}}
        assert db.get(Therapist, "therapist1") is None

    def test_failed_submit_leaves_nothing_behind(self, api, login, db, therapist):
        login(therapist)

        with patch(
            "theralink.domain.onboarding.repository.OnboardingRepository.stage_therapist",
            side_effect=RuntimeError("therapists table unavailable"),
        ):
            response = api.post(
                "/onboarding/submit",
                json={**VALID_DATA, "full_name": "Renamed", "terms_accepted": True},
            )

        assert response.status_code == 500
        assert response.json()["detail"] == "There was a problem saving your profile. Please try again."
        assert db.query(TherapistDetails).count() == 0
        assert db.get(Profile, "therapist1").full_name == "Dr. Ada Obi"

    def test_clients_cannot_onboard(self, api, login, client_profile):
        login(client_profile)
        response = api.post("/onboarding/submit", json={**VALID_DATA, "terms_accepted": True})
        assert response.status_code == 403

    def test_therapist_details_upsert(self, api, login, db, therapist):
        login(therapist)
        payload = {
            key: VALID_DATA[key]
            for key in (
                "education",
                "license_number",
                "license_type",
                "therapy_approaches",
                "languages",
                "session_formats",
            )
        }

        first = api.post("/therapist-details", json=payload)
        second = api.post("/therapist-details", json={**payload, "license_number": "LIC-9999"})

        assert first.json() == {"success": True, "message": "Therapist details saved successfully"}
        assert second.status_code == 200
        details = db.query(TherapistDetails).one()
        assert details.license_number == "LIC-9999"
