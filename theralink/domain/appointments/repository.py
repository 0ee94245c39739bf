"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, Profile


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_for_therapist(
        db: Session,
        therapist_id: str,
        status: Optional[str] = None,
        newest_first: bool = False,
    ) -> list[Appointment]:
        """Get a therapist's appointments ordered by start time"""
        query = db.query(Appointment).filter(Appointment.therapist_id == therapist_id)
        if status:
            query = query.filter(Appointment.status == status)
        order = Appointment.start_time.desc() if newest_first else Appointment.start_time.asc()
        return query.order_by(order, Appointment.id).all()

    @staticmethod
    def get_for_client(
        db: Session, client_id: str, status: Optional[str] = None
    ) -> list[Appointment]:
        query = db.query(Appointment).filter(Appointment.client_id == client_id)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.start_time.asc(), Appointment.id).all()

    @staticmethod
    def get_upcoming(
        db: Session, user_id: str, role: str, now: datetime, limit: int = 5
    ) -> list[Appointment]:
        """Pending or confirmed appointments starting after now, soonest first"""
        column = Appointment.therapist_id if role == "therapist" else Appointment.client_id
        return (
            db.query(Appointment)
            .filter(
                column == user_id,
                Appointment.status.in_(("pending", "confirmed")),
                Appointment.start_time > now,
            )
            .order_by(Appointment.start_time.asc(), Appointment.id)
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_therapist_profile(db: Session, therapist_id: str) -> Optional[Profile]:
        return (
            db.query(Profile)
            .filter(Profile.id == therapist_id, Profile.role == "therapist")
            .first()
        )

    @staticmethod
    def create_appointment(db: Session, **data) -> Appointment:
        appointment = Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update_status(db: Session, appointment: Appointment, status: str) -> Appointment:
        appointment.status = status
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def count_for_therapist(db: Session, therapist_id: str) -> int:
        return (
            db.query(func.count(Appointment.id))
            .filter(Appointment.therapist_id == therapist_id)
            .scalar()
            or 0
        )

    @staticmethod
    def distinct_client_ids(db: Session, therapist_id: str) -> list[str]:
        rows = (
            db.query(Appointment.client_id)
            .filter(Appointment.therapist_id == therapist_id)
            .distinct()
            .all()
        )
        return [row[0] for row in rows]
