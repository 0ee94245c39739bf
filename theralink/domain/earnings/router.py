"""Earnings router - FastAPI endpoints for therapist earnings"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import Profile
from .schemas import EarningsResponse, TimeRange
from .service import EarningsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/earnings", tags=["Earnings"])


def get_earnings_service(db: Session = Depends(get_db)) -> EarningsService:
    """Dependency injection for EarningsService"""
    return EarningsService(db)


@router.get("", response_model=EarningsResponse)
async def get_earnings(
    time_range: TimeRange = Query("month"),
    current_user: Profile = Depends(require_role("therapist")),
    service: EarningsService = Depends(get_earnings_service),
):
    """Transactions, summary and chart data for the selected range"""
    return service.get_earnings(current_user, time_range)


@router.get("/export")
async def export_earnings_csv(
    time_range: TimeRange = Query("month"),
    current_user: Profile = Depends(require_role("therapist")),
    service: EarningsService = Depends(get_earnings_service),
):
    return service.export_csv(current_user, time_range)
