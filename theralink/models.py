import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


def utcnow():
    """Naive UTC timestamp (all stored datetimes are naive UTC)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Appointment lifecycle
APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled")

# Allowed status transitions: pending -> confirmed -> completed, cancel from pending/confirmed
APPOINTMENT_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

TRANSACTION_STATUSES = ("pending", "completed", "failed")

PROFILE_ROLES = ("client", "therapist", "admin")


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the auth provider's user id (token "sub")
    id = Column(String(128), primary_key=True, index=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    profile_image_url = Column(String(500), nullable=True)  # Public URL in profile-images bucket
    role = Column(String(20), default="client", nullable=False)  # client, therapist, admin
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Therapist(Base):
    __tablename__ = "therapists"

    id = Column(String(128), ForeignKey("profiles.id"), primary_key=True)
    bio = Column(Text, nullable=True)
    hourly_rate = Column(Float, nullable=True)  # 0 for community therapists
    preferred_currency = Column(String(3), default="NGN", nullable=False)
    availability = Column(JSON, default=list, nullable=True)  # [{"day": "Monday", "slots": [...]}]
    approval_status = Column(String(20), default="pending", nullable=False)  # pending, approved, rejected
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class TherapistDetails(Base):
    __tablename__ = "therapist_details"

    id = Column(String(36), primary_key=True, default=generate_id)
    therapist_id = Column(
        String(128), ForeignKey("profiles.id"), unique=True, index=True, nullable=False
    )
    education = Column(Text, nullable=False)
    license_number = Column(String(100), nullable=False)
    license_type = Column(String(100), nullable=False)
    therapy_approaches = Column(Text, nullable=False)
    languages = Column(String(255), nullable=False)
    insurance_info = Column(Text, default="", nullable=True)
    session_formats = Column(String(255), nullable=False)
    has_insurance = Column(Boolean, default=False, nullable=False)
    preferred_currency = Column(String(3), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    therapist_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    session_type = Column(String(50), nullable=True)  # video, audio, chat, in_person
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (Index("ix_appointments_therapist_start", "therapist_id", "start_time"),)


class SessionNote(Base):
    __tablename__ = "session_notes"

    id = Column(String(36), primary_key=True, default=generate_id)
    # At most one note per appointment
    appointment_id = Column(
        String(36), ForeignKey("appointments.id"), unique=True, nullable=True
    )
    client_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    therapist_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    sender_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    receiver_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)  # appointment, message, review, system
    is_read = Column(Boolean, default=False, nullable=False)
    action_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_id)
    therapist_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    amount = Column(Float, nullable=False)
    transaction_type = Column(String(50), nullable=False)  # payment, session_payment, refund, payout
    status = Column(String(20), default="pending", nullable=False)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    therapist_id = Column(String(128), ForeignKey("profiles.id"), index=True, nullable=False)
    rating = Column(Integer, nullable=False)  # 1-5
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class ContactMessage(Base):
    __tablename__ = "contact_messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    user_id = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


def to_record(obj) -> dict:
    """Column-only dict of an ORM row (used for change events)"""
    return {c.key: getattr(obj, c.key) for c in obj.__table__.columns}
