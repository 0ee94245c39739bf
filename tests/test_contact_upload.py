"""
Tests for the public contact form and storage uploads
"""

from unittest.mock import MagicMock, patch

import pytest

from theralink.models import ContactMessage
from theralink.security_utils import mask_email, sanitize_text


class TestSanitization:
    """Tests for security_utils"""

    def test_sanitize_strips_tags(self):
        assert sanitize_text("  <b>Hello</b> <script>x</script>there ") == "Hello xthere"
        assert sanitize_text(None) == ""

    def test_mask_email(self):
        assert mask_email("jane@example.com") == "j***@example.com"
        assert mask_email("not-an-email") == "****"


class TestContactForm:
    """Tests for POST /contact"""

    def test_missing_fields(self, api, db):
        response = api.post("/contact", json={"name": "Jane", "email": "jane@example.com", "subject": "Hi"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}
        assert db.query(ContactMessage).count() == 0

    def test_html_only_field_counts_as_missing(self, api):
        response = api.post(
            "/contact",
            json={"name": "Jane", "email": "jane@example.com", "subject": "<i></i>", "message": "Hello"},
        )
        assert response.status_code == 400

    def test_invalid_email(self, api):
        response = api.post(
            "/contact",
            json={"name": "Jane", "email": "jane-at-example", "subject": "Hi", "message": "Hello"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid email format"}

    def test_non_text_field(self, api, db):
        response = api.post(
            "/contact",
            json={"name": 5, "email": "jane@example.com", "subject": "Hi", "message": "Hello"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid name: expected text"}
        assert db.query(ContactMessage).count() == 0

    def test_non_text_user_id(self, api):
        response = api.post(
            "/contact",
            json={"name": "Jane", "email": "jane@example.com", "subject": "Hi", "message": "Hello", "userId": []},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid userId: expected text"}

    def test_message_stored(self, api, db):
        response = api.post(
            "/contact",
            json={
                "name": "Jane",
                "email": "Jane@Example.com",
                "subject": "Question",
                "message": "<p>How do I book?</p>",
                "userId": "client1",
            },
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Message sent successfully"}
        stored = db.query(ContactMessage).one()
        assert stored.email == "jane@example.com"
        assert stored.message == "How do I book?"
        assert stored.user_id == "client1"

    def test_storage_failure(self, api):
        with patch(
            "theralink.routes.contact.insert_contact_message",
            side_effect=RuntimeError("database unavailable"),
        ):
            response = api.post(
                "/contact",
                json={"name": "Jane", "email": "jane@example.com", "subject": "Hi", "message": "Hello"},
            )

        assert response.status_code == 500
        assert response.json() == {"error": "database unavailable"}


@pytest.fixture
def storage():
    client = MagicMock()
    with patch("theralink.routes.upload.get_storage_client", return_value=client):
        yield client


class TestUploads:
    """Tests for /upload"""

    def test_profile_image(self, api, login, db, client_profile, storage):
        login(client_profile)

        response = api.post("/upload/profile-image", files={"file": ("me.png", b"\x89PNG data", "image/png")})

        assert response.status_code == 200
        body = response.json()
        assert body["key"].startswith("client1/")
        assert body["key"].endswith(".png")
        assert body["url"].endswith(f"/profile-images/{body['key']}")
        kwargs = storage.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "profile-images"
        assert kwargs["ContentType"] == "image/png"
        db.refresh(client_profile)
        assert client_profile.profile_image_url == body["url"]

    def test_profile_image_wrong_type(self, api, login, client_profile, storage):
        login(client_profile)
        response = api.post("/upload/profile-image", files={"file": ("me.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 400
        storage.put_object.assert_not_called()

    def test_profile_image_too_large(self, api, login, client_profile, storage):
        login(client_profile)
        big = b"0" * (5 * 1024 * 1024 + 1)
        response = api.post("/upload/profile-image", files={"file": ("me.png", big, "image/png")})
        assert response.status_code == 400
        assert "5MB" in response.json()["detail"]

    def test_document_upload_and_listing(self, api, login, therapist, storage):
        login(therapist)
        storage.list_objects_v2.return_value = {
            "Contents": [{"Key": "therapist1/license.pdf", "Size": 1024}]
        }

        uploaded = api.post("/upload/documents", files={"file": ("license.pdf", b"%PDF-1.7", "application/pdf")})
        listed = api.get("/upload/documents")

        assert uploaded.status_code == 201
        assert uploaded.json()["key"] == "therapist1/license.pdf"
        assert storage.put_object.call_args.kwargs["Bucket"] == "verification-documents"
        assert listed.json()[0]["name"] == "license.pdf"
        assert listed.json()[0]["size"] == 1024

    def test_document_path_traversal_rejected(self, api, login, therapist, storage):
        login(therapist)
        response = api.post("/upload/documents", files={"file": ("..evil.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 400
        storage.put_object.assert_not_called()

    def test_storage_failure(self, api, login, therapist, storage):
        login(therapist)
        storage.put_object.side_effect = RuntimeError("bucket down")
        response = api.post("/upload/documents", files={"file": ("license.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 500

    def test_clients_cannot_upload_documents(self, api, login, client_profile, storage):
        login(client_profile)
        response = api.post("/upload/documents", files={"file": ("license.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 403
