"""Therapist repository - Directory, client roster and approval queries"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, Review, Therapist, TherapistDetails


class TherapistRepository:
    """Repository for therapist directory and approval operations"""

    @staticmethod
    def get_therapists(db: Session, approval_status: Optional[str] = None) -> list[Therapist]:
        """Therapist records, oldest application first"""
        query = db.query(Therapist)
        if approval_status:
            query = query.filter(Therapist.approval_status == approval_status)
        return query.order_by(Therapist.created_at.asc(), Therapist.id).all()

    @staticmethod
    def get_therapist(db: Session, therapist_id: str) -> Optional[Therapist]:
        return db.get(Therapist, therapist_id)

    @staticmethod
    def update_approval(db: Session, therapist: Therapist, approval_status: str) -> Therapist:
        therapist.approval_status = approval_status
        db.commit()
        db.refresh(therapist)
        return therapist

    @staticmethod
    def get_details_for(db: Session, therapist_ids: set) -> dict:
        """therapist_id -> TherapistDetails (one IN query)"""
        rows = db.query(TherapistDetails).filter(TherapistDetails.therapist_id.in_(therapist_ids)).all()
        return {d.therapist_id: d for d in rows}

    @staticmethod
    def get_ratings_for(db: Session, therapist_ids: set) -> dict:
        """therapist_id -> list of ratings (one IN query)"""
        rows = (
            db.query(Review.therapist_id, Review.rating)
            .filter(Review.therapist_id.in_(therapist_ids))
            .all()
        )
        ratings: dict[str, list[int]] = {}
        for therapist_id, rating in rows:
            ratings.setdefault(therapist_id, []).append(rating)
        return ratings

    @staticmethod
    def get_client_appointments(db: Session, therapist_id: str) -> list[Appointment]:
        """All of a therapist's appointments, most recent first"""
        return (
            db.query(Appointment)
            .filter(Appointment.therapist_id == therapist_id)
            .order_by(Appointment.start_time.desc(), Appointment.id)
            .all()
        )
