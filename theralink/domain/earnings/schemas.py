"""Earnings domain schemas - Pydantic models for responses"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

TimeRange = Literal["month", "3months", "6months", "year"]


class TransactionResponse(BaseModel):
    id: str
    amount: float
    transaction_type: str
    status: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EarningsSummary(BaseModel):
    total_earnings: float
    pending_payouts: float
    completed_sessions: int
    avg_per_session: float


class MonthlyEarnings(BaseModel):
    month: str
    amount: float


class TypeTotal(BaseModel):
    name: str
    value: float


class EarningsResponse(BaseModel):
    """Everything the earnings page renders for one time range"""

    time_range: TimeRange
    start_date: datetime
    end_date: datetime
    transactions: list[TransactionResponse]
    summary: EarningsSummary
    monthly: list[MonthlyEarnings]
    by_type: list[TypeTotal]
