"""Review service - Therapist ratings and client feedback"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Profile, Review
from ...services import notification_service
from ...services.aggregator import ANONYMOUS_CLIENT, Lookup, aggregate, average, fetch_profiles
from .repository import ReviewRepository
from .schemas import ReviewCreate

logger = logging.getLogger(__name__)


def average_rating(ratings: list[int]) -> float:
    """Mean rating rounded to one decimal, 0 without reviews"""
    return round(average(ratings), 1)


def rating_distribution(ratings: list[int]) -> dict[int, int]:
    distribution = {star: 0 for star in range(1, 6)}
    for rating in ratings:
        if rating in distribution:
            distribution[rating] += 1
    return distribution


class ReviewService:
    """Service layer for review business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()

    def therapist_reviews(self, therapist: Profile) -> dict:
        def build(review: Review, resolved: dict) -> dict:
            client = resolved["client"]
            return {
                "id": review.id,
                "client_id": review.client_id,
                "rating": review.rating,
                "comment": review.comment,
                "created_at": review.created_at,
                "client_name": (client.full_name if client else None) or ANONYMOUS_CLIENT,
            }

        reviews = aggregate(
            "reviews",
            lambda: self.repo.get_for_therapist(self.db, therapist.id),
            [Lookup("client", key=lambda r: r.client_id, fetch=fetch_profiles(self.db))],
            build,
        )
        ratings = [r["rating"] for r in reviews]
        return {
            "reviews": reviews,
            "average_rating": average_rating(ratings),
            "total_reviews": len(reviews),
            "distribution": rating_distribution(ratings),
        }

    def create_review(self, data: ReviewCreate, client: Profile) -> Review:
        therapist = self.repo.get_therapist_profile(self.db, data.therapist_id)
        if not therapist:
            raise HTTPException(status_code=404, detail="Therapist not found")

        review = self.repo.create_review(
            self.db,
            client_id=client.id,
            therapist_id=therapist.id,
            rating=data.rating,
            comment=data.comment,
        )
        logger.info(f"⭐ Review {review.id} ({review.rating}/5) left for therapist {therapist.id}")

        notification_service.dispatch(
            self.db,
            therapist.id,
            "New review received",
            f"{client.full_name or 'A client'} rated you {review.rating}/5.",
            "review",
            action_url="/therapist/reviews",
        )
        return review
