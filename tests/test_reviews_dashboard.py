"""
Tests for reviews and the therapist dashboard
"""

from datetime import datetime, timedelta

from theralink.domain.dashboard.service import active_client_percentage
from theralink.domain.reviews.service import average_rating, rating_distribution
from theralink.models import Notification, Review, utcnow


class TestRatingHelpers:
    """Tests for rating aggregates"""

    def test_average_rounded_to_one_decimal(self):
        assert average_rating([5, 4, 4]) == 4.3
        assert average_rating([]) == 0.0

    def test_distribution_covers_every_star(self):
        assert rating_distribution([5, 5, 3]) == {1: 0, 2: 0, 3: 1, 4: 0, 5: 2}


class TestReviewEndpoints:
    """Tests for /reviews"""

    def test_client_leaves_review(self, api, login, db, therapist, client_profile):
        login(client_profile)

        response = api.post(
            "/reviews", json={"therapist_id": "therapist1", "rating": 5, "comment": " Very helpful "}
        )

        assert response.status_code == 201
        assert response.json()["comment"] == "Very helpful"
        notification = db.query(Notification).filter(Notification.user_id == "therapist1").one()
        assert notification.title == "New review received"

    def test_rating_out_of_bounds(self, api, login, therapist, client_profile):
        login(client_profile)
        for rating in (0, 6):
            response = api.post("/reviews", json={"therapist_id": "therapist1", "rating": rating})
            assert response.status_code == 422

    def test_review_for_unknown_therapist(self, api, login, client_profile):
        login(client_profile)
        response = api.post("/reviews", json={"therapist_id": "nobody", "rating": 4})
        assert response.status_code == 404

    def test_therapist_summary(self, api, login, db, therapist, client_profile):
        db.add_all(
            [
                Review(client_id="client1", therapist_id="therapist1", rating=5, created_at=datetime(2025, 5, 1)),
                Review(client_id="gone", therapist_id="therapist1", rating=4, created_at=datetime(2025, 5, 2)),
            ]
        )
        db.commit()
        login(therapist)

        body = api.get("/reviews").json()

        assert body["average_rating"] == 4.5
        assert body["total_reviews"] == 2
        assert body["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1}
        names = {r["client_id"]: r["client_name"] for r in body["reviews"]}
        assert names == {"client1": "Chidi Okafor", "gone": "Anonymous Client"}


class TestDashboard:
    """Tests for GET /dashboard"""

    def test_active_client_percentage(self):
        assert active_client_percentage(0) == 0
        assert active_client_percentage(5) == 50
        assert active_client_percentage(15) == 75

    def test_overview(
        self, api, login, db, make_profile, therapist, client_profile, add_appointment, add_message, add_transaction
    ):
        make_profile("client2", "client", "Bola Ade")
        soon = utcnow() + timedelta(days=1)
        add_appointment("client1", "therapist1", soon, status="confirmed")
        add_appointment("client2", "therapist1", soon + timedelta(days=1))
        add_appointment("client1", "therapist1", utcnow() - timedelta(days=7), status="completed")
        add_message("client2", "therapist1", "See you tomorrow", datetime(2025, 5, 1, 9))
        add_message("ghost", "therapist1", "Hello?", datetime(2025, 5, 2, 9))
        add_transaction("therapist1", 80.0, datetime(2025, 5, 1), transaction_type="payment")
        add_transaction("therapist1", 20.0, datetime(2025, 5, 2), transaction_type="refund")
        db.add(Review(client_id="client1", therapist_id="therapist1", rating=4))
        db.commit()
        login(therapist)

        response = api.get("/dashboard")

        assert response.status_code == 200
        body = response.json()
        assert len(body["upcoming_appointments"]) == 2
        assert body["upcoming_appointments"][0]["client"]["full_name"] == "Chidi Okafor"
        assert [m["sender"]["full_name"] for m in body["recent_messages"]] == ["Unknown Sender", "Bola Ade"]
        assert body["stats"] == {
            "total_clients": 2,
            "total_appointments": 3,
            "total_earnings": 80.0,
            "average_rating": 4.0,
            "unique_client_count": 2,
            "active_client_percentage": 29,
        }

    def test_clients_forbidden(self, api, login, client_profile):
        login(client_profile)
        assert api.get("/dashboard").status_code == 403
