"""Review repository - Database operations for therapist reviews"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Profile, Review


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_for_therapist(db: Session, therapist_id: str) -> list[Review]:
        return (
            db.query(Review)
            .filter(Review.therapist_id == therapist_id)
            .order_by(Review.created_at.desc(), Review.id)
            .all()
        )

    @staticmethod
    def get_ratings(db: Session, therapist_id: str) -> list[int]:
        rows = db.query(Review.rating).filter(Review.therapist_id == therapist_id).all()
        return [row[0] for row in rows]

    @staticmethod
    def get_therapist_profile(db: Session, therapist_id: str) -> Optional[Profile]:
        return (
            db.query(Profile)
            .filter(Profile.id == therapist_id, Profile.role == "therapist")
            .first()
        )

    @staticmethod
    def create_review(db: Session, **data) -> Review:
        review = Review(**data)
        db.add(review)
        db.commit()
        db.refresh(review)
        return review
