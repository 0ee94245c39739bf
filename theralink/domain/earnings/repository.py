"""Earnings repository - Database operations for therapist transactions"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Transaction


class TransactionRepository:
    """Repository for transaction database operations"""

    @staticmethod
    def get_transactions(
        db: Session,
        therapist_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        transaction_type: Optional[str] = None,
    ) -> list[Transaction]:
        """Get a therapist's transactions within [start, end], newest first"""
        query = db.query(Transaction).filter(Transaction.therapist_id == therapist_id)
        if start:
            query = query.filter(Transaction.created_at >= start)
        if end:
            query = query.filter(Transaction.created_at <= end)
        if transaction_type:
            query = query.filter(Transaction.transaction_type == transaction_type)
        return query.order_by(Transaction.created_at.desc(), Transaction.id).all()
