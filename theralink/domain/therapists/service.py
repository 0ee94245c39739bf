"""Therapist service - Public directory, therapist client roster and admin approval"""

import logging
from collections import OrderedDict
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Appointment, Profile, Therapist, utcnow
from ...services import notification_service
from ...services.aggregator import (
    UNKNOWN_CLIENT,
    UNKNOWN_THERAPIST,
    Lookup,
    aggregate,
    fetch_profiles,
)
from ..reviews.service import average_rating
from .repository import TherapistRepository

logger = logging.getLogger(__name__)

# Appointments that still lead to a session
OPEN_STATUSES = ("pending", "confirmed")

APPROVAL_NOTIFICATIONS = {
    "approved": (
        "Your account is verified!",
        "Congratulations! Your therapist account has been verified. "
        "You can now start accepting clients.",
        "verification_approved",
    ),
    "rejected": (
        "Account verification update",
        "Your account verification was not approved. "
        "Please check your details and resubmit.",
        "verification_rejected",
    ),
}


def _matches(term: str, *values: Optional[str]) -> bool:
    return any(term in (value or "").lower() for value in values)


class TherapistService:
    """Service layer for the therapist directory and approvals"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TherapistRepository()

    def _listings(self, approval_status: Optional[str]) -> list[dict]:
        def build(therapist: Therapist, resolved: dict) -> dict:
            profile = resolved["profile"]
            details = resolved["details"]
            ratings = resolved["ratings"]
            return {
                "id": therapist.id,
                "full_name": (profile.full_name if profile else None) or UNKNOWN_THERAPIST,
                "profile_image_url": profile.profile_image_url if profile else None,
                "bio": therapist.bio,
                "hourly_rate": therapist.hourly_rate,
                "preferred_currency": therapist.preferred_currency,
                "availability": therapist.availability or [],
                "therapy_approaches": details.therapy_approaches if details else None,
                "languages": details.languages if details else None,
                "session_formats": details.session_formats if details else None,
                "average_rating": average_rating(ratings),
                "total_reviews": len(ratings),
                "approval_status": therapist.approval_status,
            }

        return aggregate(
            "therapists",
            lambda: self.repo.get_therapists(self.db, approval_status),
            [
                Lookup("profile", key=lambda t: t.id, fetch=fetch_profiles(self.db)),
                Lookup("details", key=lambda t: t.id, fetch=lambda ids: self.repo.get_details_for(self.db, ids)),
                Lookup(
                    "ratings",
                    key=lambda t: t.id,
                    fetch=lambda ids: self.repo.get_ratings_for(self.db, ids),
                    default=[],
                ),
            ],
            build,
        )

    def directory(self, search: Optional[str] = None, language: Optional[str] = None) -> list[dict]:
        """Approved therapists, filtered by free text and spoken language"""
        therapists = self._listings("approved")
        if search:
            term = search.strip().lower()
            therapists = [
                t
                for t in therapists
                if _matches(term, t["full_name"], t["bio"], t["therapy_approaches"])
            ]
        if language:
            wanted = language.strip().lower()
            therapists = [t for t in therapists if _matches(wanted, t["languages"])]
        return therapists

    def applications(self, approval_status: Optional[str] = None) -> list[dict]:
        """Every therapist record for review, optionally by approval status"""
        return self._listings(approval_status)

    def clients(
        self, therapist: Profile, search: Optional[str] = None, status: str = "all"
    ) -> list[dict]:
        """
        One entry per client the therapist has appointments with, most
        recently seen first.

        A client is active while they have an upcoming pending or confirmed
        session.
        """
        now = utcnow()
        grouped: "OrderedDict[str, list[Appointment]]" = OrderedDict()

        def primary():
            for appointment in self.repo.get_client_appointments(self.db, therapist.id):
                grouped.setdefault(appointment.client_id, []).append(appointment)
            return list(grouped.items())

        def build(entry, resolved: dict) -> dict:
            client_id, appointments = entry
            profile = resolved["client"]
            upcoming = [
                a.start_time for a in appointments if a.status in OPEN_STATUSES and a.start_time > now
            ]
            next_session = min(upcoming) if upcoming else None
            return {
                "id": client_id,
                "full_name": (profile.full_name if profile else None) or UNKNOWN_CLIENT,
                "email": profile.email if profile else None,
                "profile_image_url": profile.profile_image_url if profile else None,
                "since": min(a.start_time for a in appointments),
                "next_session": next_session,
                "total_sessions": len(appointments),
                "completed_sessions": len([a for a in appointments if a.status == "completed"]),
                "status": "active" if next_session else "inactive",
            }

        clients = aggregate(
            "clients",
            primary,
            [Lookup("client", key=lambda entry: entry[0], fetch=fetch_profiles(self.db))],
            build,
        )
        if search:
            term = search.strip().lower()
            clients = [c for c in clients if _matches(term, c["full_name"], c["email"])]
        if status != "all":
            clients = [c for c in clients if c["status"] == status]
        return clients

    def set_approval(self, therapist_id: str, decision: str, admin: Profile) -> Therapist:
        """Approve or reject a therapist application and tell the therapist"""
        therapist = self.repo.get_therapist(self.db, therapist_id)
        if not therapist:
            raise HTTPException(status_code=404, detail="Therapist not found")

        therapist = self.repo.update_approval(self.db, therapist, decision)
        logger.info(f"🩺 Therapist {therapist.id} {decision} by admin {admin.id}")

        title, message, notification_type = APPROVAL_NOTIFICATIONS[decision]
        notification_service.dispatch(
            self.db,
            therapist.id,
            title,
            message,
            notification_type,
            action_url="/therapist/account",
        )
        return therapist
