"""Appointment service - Booking, status lifecycle and appointment views"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import APPOINTMENT_TRANSITIONS, Appointment, Profile, utcnow
from ...services import notification_service
from ...services.aggregator import (
    UNKNOWN_CLIENT,
    UNKNOWN_THERAPIST,
    AggregationError,
    Lookup,
    aggregate,
    fetch_profiles,
    group_totals,
    monthly_totals,
    profile_summary,
)
from .repository import AppointmentRepository
from .schemas import AppointmentCreate

logger = logging.getLogger(__name__)

# Which role may move an appointment into which status
ROLE_TARGETS = {
    "therapist": {"confirmed", "completed", "cancelled"},
    "client": {"cancelled"},
}


def format_session_time(appointment: Appointment) -> str:
    return appointment.start_time.strftime("%b %d, %Y at %I:%M %p")


def appointment_lookups(db: Session) -> list[Lookup]:
    """Batched client + therapist profile lookups for appointment rows"""
    profiles = fetch_profiles(db)
    return [
        Lookup("client", key=lambda a: a.client_id, fetch=profiles),
        Lookup("therapist", key=lambda a: a.therapist_id, fetch=profiles),
    ]


def build_appointment_view(appointment: Appointment, resolved: dict) -> dict:
    return {
        "id": appointment.id,
        "client_id": appointment.client_id,
        "therapist_id": appointment.therapist_id,
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "status": appointment.status,
        "session_type": appointment.session_type,
        "notes": appointment.notes,
        "created_at": appointment.created_at,
        "client": {
            "id": appointment.client_id,
            **profile_summary(resolved["client"], UNKNOWN_CLIENT),
        },
        "therapist": {
            "id": appointment.therapist_id,
            **profile_summary(resolved["therapist"], UNKNOWN_THERAPIST),
        },
    }


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def list_appointments(self, user: Profile, status: str = None) -> list[dict]:
        """The user's appointments (therapist or client side) with both profiles"""
        if user.role == "therapist":
            primary = lambda: self.repo.get_for_therapist(self.db, user.id, status)  # noqa: E731
        else:
            primary = lambda: self.repo.get_for_client(self.db, user.id, status)  # noqa: E731
        return aggregate("appointments", primary, appointment_lookups(self.db), build_appointment_view)

    def upcoming_appointments(self, user: Profile, limit: int = 5) -> list[dict]:
        return aggregate(
            "upcoming appointments",
            lambda: self.repo.get_upcoming(self.db, user.id, user.role, utcnow(), limit),
            appointment_lookups(self.db),
            build_appointment_view,
        )

    def view_of(self, appointment: Appointment) -> dict:
        return aggregate(
            "appointment", lambda: [appointment], appointment_lookups(self.db), build_appointment_view
        )[0]

    def get_appointment(self, appointment_id: str, user: Profile) -> Appointment:
        """Get an appointment the user takes part in"""
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment or user.id not in (appointment.client_id, appointment.therapist_id):
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def book_appointment(self, data: AppointmentCreate, user: Profile) -> Appointment:
        """Create a pending appointment request and notify the therapist"""
        if user.role != "client":
            raise HTTPException(status_code=403, detail="Only clients can book sessions")

        therapist = self.repo.get_therapist_profile(self.db, data.therapist_id)
        if not therapist:
            raise HTTPException(status_code=404, detail="Therapist not found")

        if data.start_time <= utcnow():
            raise HTTPException(status_code=400, detail="Sessions must be booked in the future")

        logger.info(f"📅 Booking session for client {user.id} with therapist {therapist.id}")
        appointment = self.repo.create_appointment(
            self.db,
            client_id=user.id,
            therapist_id=therapist.id,
            start_time=data.start_time,
            end_time=data.end_time,
            session_type=data.session_type,
            notes=data.notes,
            status="pending",
        )

        notification_service.dispatch(
            self.db,
            therapist.id,
            "New booking request",
            f"{user.full_name or 'A client'} requested a session on {format_session_time(appointment)}.",
            "appointment",
            action_url="/therapist/bookings",
        )
        return appointment

    def update_status(self, appointment_id: str, new_status: str, user: Profile) -> Appointment:
        """
        Move an appointment along its lifecycle.

        pending -> confirmed -> completed, or -> cancelled from pending/confirmed.
        Therapists may confirm, complete and cancel; clients may only cancel.
        """
        appointment = self.get_appointment(appointment_id, user)

        if new_status not in ROLE_TARGETS.get(user.role, set()):
            raise HTTPException(
                status_code=403, detail=f"You cannot mark this appointment as {new_status}"
            )

        if new_status not in APPOINTMENT_TRANSITIONS.get(appointment.status, set()):
            raise HTTPException(
                status_code=409,
                detail=f"Cannot change appointment from {appointment.status} to {new_status}",
            )

        previous = appointment.status
        appointment = self.repo.update_status(self.db, appointment, new_status)
        logger.info(f"🔄 Appointment {appointment.id}: {previous} -> {new_status}")

        self._notify_status_change(appointment, user)
        return appointment

    def _notify_status_change(self, appointment: Appointment, actor: Profile) -> None:
        when = format_session_time(appointment)
        if appointment.status == "confirmed":
            notification_service.dispatch(
                self.db,
                appointment.client_id,
                "Appointment confirmed",
                f"Your session on {when} has been confirmed.",
                "appointment",
                action_url="/client/appointments",
            )
        elif appointment.status == "completed":
            notification_service.dispatch(
                self.db,
                appointment.client_id,
                "Session completed",
                f"Your session on {when} is complete. Share your feedback with a review.",
                "appointment",
                action_url="/client/feedback",
            )
        elif appointment.status == "cancelled":
            if actor.id == appointment.therapist_id:
                recipient, url = appointment.client_id, "/client/appointments"
            else:
                recipient, url = appointment.therapist_id, "/therapist/appointments"
            notification_service.dispatch(
                self.db,
                recipient,
                "Appointment cancelled",
                f"The session on {when} has been cancelled by {actor.full_name or 'the other party'}.",
                "appointment",
                action_url=url,
            )

    def analytics(self, user: Profile) -> dict:
        """Monthly appointment counts and session-type distribution"""
        try:
            appointments = self.repo.get_for_therapist(self.db, user.id)
        except Exception as e:
            logger.error(f"❌ Failed to fetch appointments for analytics ({user.id}): {e}")
            raise AggregationError("appointment analytics", e) from e

        monthly = monthly_totals(appointments, lambda a: a.start_time, chronological=True)
        session_types = group_totals(appointments, lambda a: a.session_type or "Unknown")

        status_counts: dict[str, int] = {}
        for appointment in appointments:
            status_counts[appointment.status] = status_counts.get(appointment.status, 0) + 1

        return {
            "total_appointments": len(appointments),
            "monthly": [{"month": m["month"], "appointments": m["value"]} for m in monthly],
            "session_types": session_types,
            "status_counts": status_counts,
        }
