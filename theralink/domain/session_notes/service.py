"""Session note service - Therapist notes joined with clients and appointments"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Profile, SessionNote
from ...services.aggregator import (
    UNKNOWN_CLIENT,
    UNKNOWN_THERAPIST,
    Lookup,
    aggregate,
    fetch_appointments,
    fetch_profiles,
)
from .repository import SessionNoteRepository
from .schemas import SessionNoteCreate, SessionNoteUpdate

logger = logging.getLogger(__name__)

NO_APPOINTMENT_DATE = "N/A"


def _appointment_date(appointment) -> str:
    if appointment is None:
        return NO_APPOINTMENT_DATE
    return appointment.start_time.date().isoformat()


def _name(profile: Optional[Profile], default: str) -> str:
    if profile is None:
        return default
    return profile.full_name or default


class SessionNoteService:
    """Service layer for session note business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SessionNoteRepository()

    def _note_lookups(self, counterpart: str) -> list[Lookup]:
        return [
            Lookup(counterpart, key=lambda n: getattr(n, f"{counterpart}_id"), fetch=fetch_profiles(self.db)),
            Lookup("appointment", key=lambda n: n.appointment_id, fetch=fetch_appointments(self.db)),
        ]

    def _build_view(self, note: SessionNote, resolved: dict) -> dict:
        return {
            "id": note.id,
            "appointment_id": note.appointment_id,
            "client_id": note.client_id,
            "therapist_id": note.therapist_id,
            "title": note.title,
            "content": note.content,
            "created_at": note.created_at,
            "updated_at": note.updated_at,
            "client_name": _name(resolved["client"], UNKNOWN_CLIENT),
            "appointment_date": _appointment_date(resolved["appointment"]),
        }

    def list_notes(self, therapist: Profile, search: Optional[str] = None) -> list[dict]:
        """Therapist's notes with client name and appointment date, newest first"""
        notes = aggregate(
            "session notes",
            lambda: self.repo.get_for_therapist(self.db, therapist.id),
            self._note_lookups("client"),
            self._build_view,
        )
        if search:
            term = search.lower()
            notes = [
                n
                for n in notes
                if term in n["title"].lower()
                or term in n["content"].lower()
                or term in n["client_name"].lower()
            ]
        return notes

    def list_client_notes(self, client: Profile) -> list[dict]:
        """Notes written about the client, with therapist name"""

        def build(note: SessionNote, resolved: dict) -> dict:
            return {
                "id": note.id,
                "appointment_id": note.appointment_id,
                "title": note.title,
                "content": note.content,
                "created_at": note.created_at,
                "therapist_name": _name(resolved["therapist"], UNKNOWN_THERAPIST),
                "appointment_date": _appointment_date(resolved["appointment"]),
            }

        return aggregate(
            "session notes",
            lambda: self.repo.get_for_client(self.db, client.id),
            self._note_lookups("therapist"),
            build,
        )

    def completed_appointments(self, therapist: Profile) -> list[dict]:
        """Completed appointments, most recent first, flagged with has_note"""

        def fetch_noted(ids: set) -> dict:
            return {appointment_id: True for appointment_id in self.repo.noted_appointment_ids(self.db, ids)}

        def build(appointment, resolved: dict) -> dict:
            return {
                "id": appointment.id,
                "client_id": appointment.client_id,
                "start_time": appointment.start_time,
                "end_time": appointment.end_time,
                "client_name": _name(resolved["client"], UNKNOWN_CLIENT),
                "has_note": resolved["note"],
            }

        return aggregate(
            "completed appointments",
            lambda: self.repo.get_completed_appointments(self.db, therapist.id),
            [
                Lookup("client", key=lambda a: a.client_id, fetch=fetch_profiles(self.db)),
                # A failed note check degrades to "no note yet"
                Lookup("note", key=lambda a: a.id, fetch=fetch_noted, default=False),
            ],
            build,
        )

    def view_of(self, note: SessionNote) -> dict:
        return aggregate("session note", lambda: [note], self._note_lookups("client"), self._build_view)[0]

    def create_note(self, data: SessionNoteCreate, therapist: Profile) -> SessionNote:
        """Write the note for one of the therapist's completed appointments"""
        appointment = self.repo.get_appointment(self.db, data.appointment_id)
        if not appointment or appointment.therapist_id != therapist.id:
            raise HTTPException(status_code=404, detail="Appointment not found")

        if appointment.status != "completed":
            raise HTTPException(
                status_code=400, detail="Notes can only be added to completed sessions"
            )

        if self.repo.get_by_appointment(self.db, appointment.id):
            raise HTTPException(
                status_code=409, detail="A note already exists for this appointment"
            )

        try:
            note = self.repo.create_note(
                self.db,
                appointment_id=appointment.id,
                client_id=appointment.client_id,
                therapist_id=therapist.id,
                title=data.title,
                content=data.content,
            )
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=409, detail="A note already exists for this appointment"
            )

        logger.info(f"📝 Session note {note.id} created for appointment {appointment.id}")
        return note

    def update_note(self, note_id: str, data: SessionNoteUpdate, therapist: Profile) -> SessionNote:
        note = self.repo.get_note(self.db, note_id, therapist.id)
        if not note:
            raise HTTPException(status_code=404, detail="Session note not found")

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return note
        return self.repo.update_note(self.db, note, **update_data)
