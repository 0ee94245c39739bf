"""Therapist router - Directory, client roster and admin approval endpoints"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import Profile
from .schemas import (
    ApprovalResponse,
    ApprovalUpdate,
    ClientStatusFilter,
    TherapistClient,
    TherapistListing,
)
from .service import TherapistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/therapists", tags=["Therapists"])
admin_router = APIRouter(prefix="/admin/therapists", tags=["Admin"])


def get_therapist_service(db: Session = Depends(get_db)) -> TherapistService:
    """Dependency injection for TherapistService"""
    return TherapistService(db)


@router.get("", response_model=list[TherapistListing])
async def list_therapists(
    search: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    service: TherapistService = Depends(get_therapist_service),
):
    """Public directory of approved therapists"""
    return service.directory(search, language)


@router.get("/me/clients", response_model=list[TherapistClient])
async def get_my_clients(
    search: Optional[str] = Query(None),
    status: ClientStatusFilter = Query("all"),
    current_user: Profile = Depends(require_role("therapist")),
    service: TherapistService = Depends(get_therapist_service),
):
    """Clients the current therapist has appointments with"""
    return service.clients(current_user, search, status)


@admin_router.get("", response_model=list[TherapistListing])
async def list_applications(
    status: Optional[Literal["pending", "approved", "rejected"]] = Query(None),
    current_user: Profile = Depends(require_role("admin")),
    service: TherapistService = Depends(get_therapist_service),
):
    return service.applications(status)


@admin_router.post("/{therapist_id}/approval", response_model=ApprovalResponse)
async def update_approval(
    therapist_id: str,
    data: ApprovalUpdate,
    current_user: Profile = Depends(require_role("admin")),
    service: TherapistService = Depends(get_therapist_service),
):
    """Approve or reject a therapist application"""
    return service.set_approval(therapist_id, data.status, current_user)
