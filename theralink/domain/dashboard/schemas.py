"""Dashboard schemas - Pydantic models for the therapist overview"""

from datetime import datetime

from pydantic import BaseModel

from ..appointments.schemas import AppointmentView, PersonSummary


class RecentMessage(BaseModel):
    id: str
    content: str
    created_at: datetime
    is_read: bool
    sender: PersonSummary


class DashboardStats(BaseModel):
    total_clients: int
    total_appointments: int
    total_earnings: float
    average_rating: float
    unique_client_count: int
    active_client_percentage: int


class DashboardResponse(BaseModel):
    upcoming_appointments: list[AppointmentView]
    recent_messages: list[RecentMessage]
    stats: DashboardStats
