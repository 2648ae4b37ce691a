"""Builders shared by the test modules."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from unibudget.models.ledger import PaymentMethod, Transaction, TransactionType


def make_transaction(
    amount: str = "100",
    type: TransactionType = TransactionType.EXPENSE,
    category: str = "Food",
    method: PaymentMethod = PaymentMethod.CASH,
    date: Optional[datetime] = None,
    note: str = "",
) -> Transaction:
    """Build a transaction with sensible defaults."""
    return Transaction(
        id=uuid4(),
        amount=Decimal(amount),
        type=type,
        category=category,
        method=method,
        date=date or datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        note=note,
    )
