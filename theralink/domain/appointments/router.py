"""Appointment router - FastAPI endpoints for booking and the appointment lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import Profile
from .schemas import (
    AppointmentAnalytics,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentView,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.get("", response_model=list[AppointmentView])
async def get_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get the current user's appointments with client and therapist profiles"""
    return service.list_appointments(current_user, status)


@router.get("/upcoming", response_model=list[AppointmentView])
async def get_upcoming_appointments(
    limit: int = Query(5, ge=1, le=50),
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.upcoming_appointments(current_user, limit)


@router.get("/analytics", response_model=AppointmentAnalytics)
async def get_appointment_analytics(
    current_user: Profile = Depends(require_role("therapist")),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Monthly appointment counts and session-type breakdown for the therapist"""
    return service.analytics(current_user)


@router.post("", response_model=AppointmentView, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Request a session with a therapist"""
    appointment = service.book_appointment(data, current_user)
    return service.view_of(appointment)


@router.post("/{appointment_id}/status", response_model=AppointmentView)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Confirm, complete or cancel an appointment"""
    appointment = service.update_status(appointment_id, data.status, current_user)
    return service.view_of(appointment)
