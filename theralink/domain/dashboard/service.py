"""Dashboard service - Therapist overview: upcoming sessions, inbox and statistics"""

import logging

from sqlalchemy.orm import Session

from ...models import Message, Profile
from ...services.aggregator import (
    UNKNOWN_SENDER,
    AggregationError,
    Lookup,
    aggregate,
    fetch_profiles,
    percentage,
    profile_summary,
    sum_amounts,
)
from ..appointments.repository import AppointmentRepository
from ..appointments.service import AppointmentService
from ..earnings.repository import TransactionRepository
from ..messages.repository import MessageRepository
from ..reviews.repository import ReviewRepository
from ..reviews.service import average_rating

logger = logging.getLogger(__name__)

DASHBOARD_LIMIT = 5
# Placeholder heuristic, not a business rule
ACTIVE_CLIENT_PADDING = 5


def active_client_percentage(unique_clients: int) -> int:
    if unique_clients <= 0:
        return 0
    return percentage(unique_clients, unique_clients + ACTIVE_CLIENT_PADDING)


class DashboardService:
    """Service layer for the therapist dashboard"""

    def __init__(self, db: Session):
        self.db = db

    def recent_messages(self, user: Profile, limit: int = DASHBOARD_LIMIT) -> list[dict]:
        def build(message: Message, resolved: dict) -> dict:
            return {
                "id": message.id,
                "content": message.content,
                "created_at": message.created_at,
                "is_read": message.is_read,
                "sender": {
                    "id": message.sender_id,
                    **profile_summary(resolved["sender"], UNKNOWN_SENDER),
                },
            }

        return aggregate(
            "recent messages",
            lambda: MessageRepository.get_received(self.db, user.id, limit),
            [Lookup("sender", key=lambda m: m.sender_id, fetch=fetch_profiles(self.db))],
            build,
        )

    def stats(self, therapist: Profile) -> dict:
        try:
            client_ids = AppointmentRepository.distinct_client_ids(self.db, therapist.id)
            total_appointments = AppointmentRepository.count_for_therapist(self.db, therapist.id)
            payments = TransactionRepository.get_transactions(
                self.db, therapist.id, transaction_type="payment"
            )
            ratings = ReviewRepository.get_ratings(self.db, therapist.id)
        except Exception as e:
            logger.error(f"❌ Failed to load dashboard statistics for {therapist.id}: {e}")
            raise AggregationError("dashboard data", e) from e

        unique_clients = len(client_ids)
        return {
            "total_clients": unique_clients,
            "total_appointments": total_appointments,
            "total_earnings": sum_amounts(payments),
            "average_rating": average_rating(ratings),
            "unique_client_count": unique_clients,
            "active_client_percentage": active_client_percentage(unique_clients),
        }

    def overview(self, therapist: Profile) -> dict:
        return {
            "upcoming_appointments": AppointmentService(self.db).upcoming_appointments(
                therapist, DASHBOARD_LIMIT
            ),
            "recent_messages": self.recent_messages(therapist),
            "stats": self.stats(therapist),
        }
