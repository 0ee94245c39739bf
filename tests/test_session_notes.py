"""
Tests for therapist session notes
"""

from datetime import datetime

import pytest

from theralink.models import SessionNote


@pytest.fixture
def add_note(db):
    def factory(therapist_id, client_id, title, content, appointment_id=None, created_at=None):
        note = SessionNote(
            therapist_id=therapist_id,
            client_id=client_id,
            appointment_id=appointment_id,
            title=title,
            content=content,
            created_at=created_at or datetime(2025, 6, 1, 12),
        )
        db.add(note)
        db.commit()
        return note

    return factory


class TestListNotes:
    """Tests for GET /session-notes"""

    def test_joined_with_client_and_appointment(
        self, api, login, therapist, client_profile, add_appointment, add_note
    ):
        appointment = add_appointment("client1", "therapist1", datetime(2025, 5, 20, 14), status="completed")
        add_note("therapist1", "client1", "Intake", "Discussed goals", appointment_id=appointment.id)
        add_note("therapist1", "ghost", "Walk-in", "No booking", created_at=datetime(2025, 6, 2, 12))
        login(therapist)

        body = api.get("/session-notes").json()

        by_title = {n["title"]: n for n in body}
        assert by_title["Intake"]["client_name"] == "Chidi Okafor"
        assert by_title["Intake"]["appointment_date"] == "2025-05-20"
        assert by_title["Walk-in"]["client_name"] == "Unknown Client"
        assert by_title["Walk-in"]["appointment_date"] == "N/A"

    def test_search_matches_client_name(self, api, login, therapist, client_profile, add_note):
        add_note("therapist1", "client1", "Follow up", "Sleep hygiene")
        add_note("therapist1", "ghost", "Other", "Unrelated")
        login(therapist)

        body = api.get("/session-notes", params={"search": "chidi"}).json()

        assert [n["title"] for n in body] == ["Follow up"]

    def test_client_sees_therapist_name(self, api, login, therapist, client_profile, add_note):
        add_note("therapist1", "client1", "Intake", "Discussed goals")
        login(client_profile)

        body = api.get("/session-notes/mine").json()

        assert body[0]["therapist_name"] == "Dr. Ada Obi"


class TestCompletedAppointments:
    """Tests for GET /session-notes/pending"""

    def test_has_note_flag(self, api, login, therapist, client_profile, add_appointment, add_note):
        a1 = add_appointment("client1", "therapist1", datetime(2025, 5, 1, 10), status="completed")
        a2 = add_appointment("client1", "therapist1", datetime(2025, 5, 8, 10), status="completed")
        add_appointment("client1", "therapist1", datetime(2025, 5, 15, 10), status="confirmed")
        add_note("therapist1", "client1", "Week two", "Progress", appointment_id=a2.id)
        login(therapist)

        body = api.get("/session-notes/pending").json()

        assert [a["id"] for a in body] == [a2.id, a1.id]
        flags = {a["id"]: a["has_note"] for a in body}
        assert flags == {a1.id: False, a2.id: True}


class TestCreateNote:
    """Tests for POST /session-notes and PATCH /session-notes/{id}"""

    def test_create_for_completed_appointment(self, api, login, therapist, client_profile, add_appointment):
        appointment = add_appointment("client1", "therapist1", datetime(2025, 5, 1, 10), status="completed")
        login(therapist)

        response = api.post(
            "/session-notes",
            json={"appointment_id": appointment.id, "title": "Intake", "content": "Discussed goals"},
        )

        assert response.status_code == 201
        assert response.json()["client_id"] == "client1"
        pending = api.get("/session-notes/pending").json()
        assert pending[0]["has_note"] is True

    def test_second_note_conflicts(self, api, login, therapist, client_profile, add_appointment, add_note):
        appointment = add_appointment("client1", "therapist1", datetime(2025, 5, 1, 10), status="completed")
        add_note("therapist1", "client1", "Intake", "First", appointment_id=appointment.id)
        login(therapist)

        response = api.post(
            "/session-notes",
            json={"appointment_id": appointment.id, "title": "Again", "content": "Second"},
        )

        assert response.status_code == 409

    def test_not_completed_rejected(self, api, login, therapist, client_profile, add_appointment):
        appointment = add_appointment("client1", "therapist1", datetime(2025, 5, 1, 10), status="confirmed")
        login(therapist)

        response = api.post(
            "/session-notes",
            json={"appointment_id": appointment.id, "title": "Intake", "content": "Too early"},
        )

        assert response.status_code == 400

    def test_blank_title_rejected(self, api, login, therapist):
        login(therapist)
        response = api.post(
            "/session-notes", json={"appointment_id": "a1", "title": "   ", "content": "Body"}
        )
        assert response.status_code == 422

    def test_update_note(self, api, login, therapist, client_profile, add_note):
        note = add_note("therapist1", "client1", "Draft", "Body")
        login(therapist)

        response = api.patch(f"/session-notes/{note.id}", json={"title": "Final"})

        assert response.status_code == 200
        assert response.json()["title"] == "Final"
        assert response.json()["content"] == "Body"

    def test_client_cannot_write_notes(self, api, login, client_profile):
        login(client_profile)
        response = api.post(
            "/session-notes", json={"appointment_id": "a1", "title": "Mine", "content": "Body"}
        )
        assert response.status_code == 403
