"""
Tests for token verification and role guards
"""

import asyncio
import base64
import json

import pytest
from fastapi import HTTPException

from theralink.auth import AuthContext, verify_token
from theralink.models import Profile


def _segment(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).decode().rstrip("=")


class TestVerifyToken:
    """Tests for verify_token() rejections that need no network"""

    def test_malformed_token(self):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(verify_token("not-a-jwt"))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid token format"

    def test_wrong_algorithm(self):
        token = f"{_segment({'alg': 'HS256', 'kid': 'k1'})}.{_segment({'sub': 'u1'})}.sig"
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(verify_token(token))
        assert exc_info.value.detail == "Invalid token algorithm"


class TestAuthContext:
    """Tests for AuthContext"""

    def test_exposes_profile_identity(self):
        ctx = AuthContext(profile=Profile(id="t1", role="therapist"), claims={"sub": "t1"})
        assert ctx.user_id == "t1"
        assert ctx.role == "therapist"

    def test_role_guard(self, api, login, client_profile, therapist):
        login(client_profile)
        assert api.get("/reviews").status_code == 403

        login(therapist)
        assert api.get("/reviews").status_code == 200
