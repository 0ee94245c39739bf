"""
Tests for direct messaging
"""

from datetime import datetime

from theralink.models import Message, Notification


class TestConversations:
    """Tests for GET /messages/conversations"""

    def test_latest_message_and_unread_count(self, api, login, make_profile, add_message):
        therapist = make_profile("t1", "therapist", "Dr. Ada Obi")
        make_profile("c1", "client", "Chidi Okafor")
        make_profile("c2", "client", "Bola Ade")
        add_message("c1", "t1", "Hello doctor", datetime(2025, 5, 1, 9, 0))
        add_message("t1", "c1", "Hi Chidi", datetime(2025, 5, 1, 9, 5))
        add_message("c1", "t1", "Can we reschedule?", datetime(2025, 5, 1, 9, 10))
        add_message("c2", "t1", "Thanks!", datetime(2025, 4, 30, 18, 0), is_read=True)
        login(therapist)

        body = api.get("/messages/conversations").json()

        assert [c["partner"]["id"] for c in body] == ["c1", "c2"]
        assert body[0]["partner"]["full_name"] == "Chidi Okafor"
        assert body[0]["last_message"] == "Can we reschedule?"
        assert body[0]["unread_count"] == 2
        assert body[1]["unread_count"] == 0

    def test_own_sent_message_is_not_unread(self, api, login, make_profile, add_message):
        therapist = make_profile("t1", "therapist")
        make_profile("c1", "client")
        add_message("c1", "t1", "Question", datetime(2025, 5, 1, 9, 0))
        add_message("t1", "c1", "Answer", datetime(2025, 5, 1, 9, 5))
        login(therapist)

        body = api.get("/messages/conversations").json()

        assert body[0]["last_message"] == "Answer"
        assert body[0]["unread_count"] == 1

    def test_missing_partner_profile_defaults(self, api, login, make_profile, add_message):
        client = make_profile("c1", "client")
        add_message("deleted-therapist", "c1", "Bye", datetime(2025, 5, 1, 9, 0))
        login(client)

        body = api.get("/messages/conversations").json()

        assert body[0]["partner"]["full_name"] == "Unknown Therapist"


class TestThread:
    """Tests for GET /messages/conversations/{partner_id}"""

    def test_thread_is_oldest_first_and_marks_read(self, api, login, db, make_profile, add_message):
        therapist = make_profile("t1", "therapist")
        make_profile("c1", "client")
        add_message("c1", "t1", "First", datetime(2025, 5, 1, 9, 0))
        add_message("t1", "c1", "Second", datetime(2025, 5, 1, 9, 5))
        add_message("c1", "t1", "Third", datetime(2025, 5, 1, 9, 10))
        login(therapist)

        body = api.get("/messages/conversations/c1").json()

        assert [m["content"] for m in body] == ["First", "Second", "Third"]
        unread_for_therapist = (
            db.query(Message).filter(Message.receiver_id == "t1", Message.is_read.is_(False)).count()
        )
        assert unread_for_therapist == 0
        assert api.get("/messages/conversations").json()[0]["unread_count"] == 0


class TestSend:
    """Tests for POST /messages"""

    def test_send_notifies_receiver(self, api, login, db, make_profile):
        client = make_profile("c1", "client", "Chidi Okafor")
        make_profile("t1", "therapist")
        login(client)

        response = api.post("/messages", json={"receiver_id": "t1", "content": "  Hello  "})

        assert response.status_code == 201
        assert response.json()["content"] == "Hello"
        notification = db.query(Notification).filter(Notification.user_id == "t1").one()
        assert notification.title == "New message from Chidi Okafor"
        assert notification.action_url == "/therapist/messages"

    def test_empty_message_rejected(self, api, login, make_profile):
        client = make_profile("c1", "client")
        make_profile("t1", "therapist")
        login(client)

        response = api.post("/messages", json={"receiver_id": "t1", "content": "   "})

        assert response.status_code == 422

    def test_unknown_receiver(self, api, login, make_profile):
        login(make_profile("c1", "client"))
        response = api.post("/messages", json={"receiver_id": "nobody", "content": "Hi"})
        assert response.status_code == 404

    def test_message_to_self_rejected(self, api, login, make_profile):
        login(make_profile("c1", "client"))
        response = api.post("/messages", json={"receiver_id": "c1", "content": "Hi"})
        assert response.status_code == 400
