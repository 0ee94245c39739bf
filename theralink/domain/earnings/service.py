"""Earnings service - Transaction summaries, charts and CSV export"""

import csv
import logging
from datetime import datetime, timedelta
from io import StringIO

from dateutil.relativedelta import relativedelta
from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...models import Profile, Transaction, utcnow
from ...services.aggregator import AggregationError, group_totals, monthly_totals, sum_amounts
from .repository import TransactionRepository

logger = logging.getLogger(__name__)

RANGE_MONTHS = {"3months": 3, "6months": 6, "year": 12}

CSV_HEADER = ["Date", "Amount", "Description", "Type", "Status"]


def date_range(time_range: str, now: datetime) -> tuple[datetime, datetime]:
    """
    Resolve a named range to [start, end].

    "month" is the current calendar month; the others reach back that many
    months from now.
    """
    if time_range == "month":
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        end = start + relativedelta(months=1) - timedelta(microseconds=1)
        return start, end
    if time_range not in RANGE_MONTHS:
        raise ValueError(f"Unknown time range: {time_range}")
    return now - relativedelta(months=RANGE_MONTHS[time_range]), now


def summarize(transactions: list[Transaction]) -> dict:
    total = sum_amounts(transactions)
    pending = sum_amounts(t for t in transactions if t.status == "pending")
    completed_sessions = len(
        [
            t
            for t in transactions
            if t.transaction_type == "session_payment" and t.status == "completed"
        ]
    )
    return {
        "total_earnings": total,
        "pending_payouts": pending,
        "completed_sessions": completed_sessions,
        "avg_per_session": total / completed_sessions if completed_sessions else 0.0,
    }


def _format_amount(amount) -> str:
    amount = float(amount or 0)
    return str(int(amount)) if amount.is_integer() else str(amount)


class EarningsService:
    """Service layer for therapist earnings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TransactionRepository()

    def _load(self, therapist: Profile, time_range: str) -> tuple[datetime, datetime, list]:
        start, end = date_range(time_range, utcnow())
        try:
            transactions = self.repo.get_transactions(self.db, therapist.id, start, end)
        except Exception as e:
            logger.error(f"❌ Failed to fetch transactions for {therapist.id}: {e}")
            raise AggregationError("earnings data", e) from e
        return start, end, transactions

    def get_earnings(self, therapist: Profile, time_range: str = "month") -> dict:
        start, end, transactions = self._load(therapist, time_range)
        monthly = monthly_totals(
            transactions,
            lambda t: t.created_at,
            amount=lambda t: t.amount or 0,
            chronological=True,
        )
        return {
            "time_range": time_range,
            "start_date": start,
            "end_date": end,
            "transactions": transactions,
            "summary": summarize(transactions),
            "monthly": [{"month": m["month"], "amount": m["value"]} for m in monthly],
            "by_type": group_totals(
                transactions, lambda t: t.transaction_type, amount=lambda t: t.amount or 0
            ),
        }

    def export_csv(self, therapist: Profile, time_range: str = "month") -> StreamingResponse:
        """Export the range's transactions as CSV"""
        try:
            _, _, transactions = self._load(therapist, time_range)

            output = StringIO()
            writer = csv.writer(output, lineterminator="\n")
            writer.writerow(CSV_HEADER)
            for t in transactions:
                writer.writerow(
                    [
                        t.created_at.strftime("%Y-%m-%d"),
                        _format_amount(t.amount),
                        t.description or "N/A",
                        t.transaction_type,
                        t.status,
                    ]
                )

            output.seek(0)
            filename = f"earnings_{utcnow().strftime('%Y-%m-%d')}.csv"
            logger.info(f"✅ Earnings export for {therapist.id}: {len(transactions)} transactions")

            return StreamingResponse(
                iter([output.getvalue()]),
                media_type="text/csv",
                headers={
                    "Content-Disposition": f"attachment; filename={filename}",
                    "Cache-Control": "no-cache",
                },
            )
        except AggregationError:
            raise
        except Exception as e:
            logger.error(f"❌ Earnings export failed for {therapist.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to export earnings. Please try again.")
