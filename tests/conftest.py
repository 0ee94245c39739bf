"""
Test configuration - in-memory SQLite database and an overridable current user.

Environment variables are set before the application is imported so the
engine is created against SQLite and no auth warning is raised.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_PROJECT_ID", "theralink-test")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from theralink.auth import AuthContext, get_auth_context  # noqa: E402
from theralink.database import Base, SessionLocal, engine, get_db  # noqa: E402
from theralink.main import app  # noqa: E402
from theralink.models import (  # noqa: E402
    Appointment,
    Message,
    Notification,
    Profile,
    Transaction,
    utcnow,
)
from theralink.routes.contact import contact_rate_limit  # noqa: E402


@pytest.fixture
def db():
    """Fresh schema per test"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_profile(db):
    def factory(profile_id: str, role: str = "client", full_name: str = None) -> Profile:
        profile = Profile(
            id=profile_id,
            email=f"{profile_id}@example.com",
            full_name=full_name if full_name is not None else profile_id.title(),
            role=role,
        )
        db.add(profile)
        db.commit()
        return profile

    return factory


@pytest.fixture
def therapist(make_profile):
    return make_profile("therapist1", "therapist", "Dr. Ada Obi")


@pytest.fixture
def client_profile(make_profile):
    return make_profile("client1", "client", "Chidi Okafor")


@pytest.fixture
def current_user():
    """Holder for the id of the authenticated user"""
    return {"id": None}


@pytest.fixture
def api(db, current_user):
    """TestClient whose requests run as current_user['id']"""

    def override_get_db():
        yield db

    async def override_auth_context():
        profile = db.get(Profile, current_user["id"])
        return AuthContext(profile=profile, claims={"sub": current_user["id"]})

    async def no_rate_limit():
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_context] = override_auth_context
    app.dependency_overrides[contact_rate_limit] = no_rate_limit
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def login(current_user):
    def as_user(profile: Profile):
        current_user["id"] = profile.id

    return as_user


# ============================================================================
# ROW BUILDERS
# ============================================================================


@pytest.fixture
def add_appointment(db):
    def factory(
        client_id: str,
        therapist_id: str,
        start_time: datetime,
        status: str = "pending",
        session_type: str = "video",
        **extra,
    ) -> Appointment:
        appointment = Appointment(
            client_id=client_id,
            therapist_id=therapist_id,
            start_time=start_time,
            end_time=start_time + timedelta(hours=1),
            status=status,
            session_type=session_type,
            **extra,
        )
        db.add(appointment)
        db.commit()
        return appointment

    return factory


@pytest.fixture
def add_message(db):
    def factory(sender_id: str, receiver_id: str, content: str, created_at: datetime, is_read=False):
        message = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            created_at=created_at,
            is_read=is_read,
        )
        db.add(message)
        db.commit()
        return message

    return factory


@pytest.fixture
def add_notification(db):
    def factory(user_id: str, title: str, is_read: bool = False, created_at: datetime = None, **extra):
        notification = Notification(
            user_id=user_id,
            title=title,
            message=extra.pop("message", f"{title} body"),
            type=extra.pop("type", "system"),
            is_read=is_read,
            created_at=created_at or utcnow(),
            **extra,
        )
        db.add(notification)
        db.commit()
        return notification

    return factory


@pytest.fixture
def add_transaction(db):
    def factory(therapist_id: str, amount: float, created_at: datetime, **extra) -> Transaction:
        transaction = Transaction(
            therapist_id=therapist_id,
            amount=amount,
            transaction_type=extra.pop("transaction_type", "session_payment"),
            status=extra.pop("status", "completed"),
            created_at=created_at,
            **extra,
        )
        db.add(transaction)
        db.commit()
        return transaction

    return factory
