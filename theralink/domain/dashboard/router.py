"""Dashboard router - FastAPI endpoint for the therapist overview"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import Profile
from .schemas import DashboardResponse
from .service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    current_user: Profile = Depends(require_role("therapist")),
    db: Session = Depends(get_db),
):
    """Upcoming sessions, latest received messages and practice statistics"""
    return DashboardService(db).overview(current_user)
