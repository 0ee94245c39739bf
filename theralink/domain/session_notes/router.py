"""Session note router - FastAPI endpoints for therapist session notes"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import Profile
from .schemas import (
    ClientSessionNoteView,
    CompletedAppointment,
    SessionNoteCreate,
    SessionNoteUpdate,
    SessionNoteView,
)
from .service import SessionNoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session-notes", tags=["Session Notes"])


def get_session_note_service(db: Session = Depends(get_db)) -> SessionNoteService:
    """Dependency injection for SessionNoteService"""
    return SessionNoteService(db)


@router.get("", response_model=list[SessionNoteView])
async def get_session_notes(
    search: Optional[str] = Query(None),
    current_user: Profile = Depends(require_role("therapist")),
    service: SessionNoteService = Depends(get_session_note_service),
):
    """Get the therapist's notes, optionally filtered by title, content or client"""
    return service.list_notes(current_user, search)


@router.get("/pending", response_model=list[CompletedAppointment])
async def get_completed_appointments(
    current_user: Profile = Depends(require_role("therapist")),
    service: SessionNoteService = Depends(get_session_note_service),
):
    """Completed appointments with has_note so the UI can prompt for missing notes"""
    return service.completed_appointments(current_user)


@router.get("/mine", response_model=list[ClientSessionNoteView])
async def get_my_session_notes(
    current_user: Profile = Depends(require_role("client")),
    service: SessionNoteService = Depends(get_session_note_service),
):
    return service.list_client_notes(current_user)


@router.post("", response_model=SessionNoteView, status_code=201)
async def create_session_note(
    data: SessionNoteCreate,
    current_user: Profile = Depends(require_role("therapist")),
    service: SessionNoteService = Depends(get_session_note_service),
):
    note = service.create_note(data, current_user)
    return service.view_of(note)


@router.patch("/{note_id}", response_model=SessionNoteView)
async def update_session_note(
    note_id: str,
    data: SessionNoteUpdate,
    current_user: Profile = Depends(require_role("therapist")),
    service: SessionNoteService = Depends(get_session_note_service),
):
    note = service.update_note(note_id, data, current_user)
    return service.view_of(note)
