"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import to_naive_utc

AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled"]


class AppointmentCreate(BaseModel):
    """Schema for a client booking a session"""

    therapist_id: str
    start_time: datetime
    end_time: datetime
    session_type: Optional[str] = "video"
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class PersonSummary(BaseModel):
    id: str
    full_name: str
    profile_image_url: Optional[str] = None


class AppointmentView(BaseModel):
    """Appointment joined with both participants' profiles"""

    id: str
    client_id: str
    therapist_id: str
    start_time: datetime
    end_time: datetime
    status: str
    session_type: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    client: PersonSummary
    therapist: PersonSummary


class ChartPoint(BaseModel):
    month: str
    appointments: int


class NamedValue(BaseModel):
    name: str
    value: float


class AppointmentAnalytics(BaseModel):
    total_appointments: int
    monthly: list[ChartPoint]
    session_types: list[NamedValue]
    status_counts: dict[str, int]
