"""Session note repository - Database operations for session notes"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, SessionNote


class SessionNoteRepository:
    """Repository for session note database operations"""

    @staticmethod
    def get_for_therapist(db: Session, therapist_id: str) -> list[SessionNote]:
        """Get a therapist's notes, newest first"""
        query = db.query(SessionNote).filter(SessionNote.therapist_id == therapist_id)
        return query.order_by(SessionNote.created_at.desc(), SessionNote.id).all()

    @staticmethod
    def get_for_client(db: Session, client_id: str) -> list[SessionNote]:
        return (
            db.query(SessionNote)
            .filter(SessionNote.client_id == client_id)
            .order_by(SessionNote.created_at.desc(), SessionNote.id)
            .all()
        )

    @staticmethod
    def get_note(db: Session, note_id: str, therapist_id: str) -> Optional[SessionNote]:
        return (
            db.query(SessionNote)
            .filter(SessionNote.id == note_id, SessionNote.therapist_id == therapist_id)
            .first()
        )

    @staticmethod
    def get_by_appointment(db: Session, appointment_id: str) -> Optional[SessionNote]:
        return (
            db.query(SessionNote).filter(SessionNote.appointment_id == appointment_id).first()
        )

    @staticmethod
    def noted_appointment_ids(db: Session, appointment_ids: set) -> set:
        """Which of the given appointments already have a note (one IN query)"""
        if not appointment_ids:
            return set()
        rows = (
            db.query(SessionNote.appointment_id)
            .filter(SessionNote.appointment_id.in_(appointment_ids))
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def get_completed_appointments(db: Session, therapist_id: str) -> list[Appointment]:
        """Completed appointments, most recent first"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.therapist_id == therapist_id,
                Appointment.status == "completed",
            )
            .order_by(Appointment.start_time.desc(), Appointment.id)
            .all()
        )

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def create_note(db: Session, **data) -> SessionNote:
        note = SessionNote(**data)
        db.add(note)
        db.commit()
        db.refresh(note)
        return note

    @staticmethod
    def update_note(db: Session, note: SessionNote, **data) -> SessionNote:
        for key, value in data.items():
            setattr(note, key, value)
        db.commit()
        db.refresh(note)
        return note
