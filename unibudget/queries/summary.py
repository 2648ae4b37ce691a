"""
Financial Summary Aggregation

Derives balances and totals from the full transaction log in one pass.
The result is a pure function of the transactions given: no rounding,
no dependence on order.

Always:
    total_balance == cash_balance + card_balance
    total_balance == total_income - total_expense
"""

from decimal import Decimal
from typing import Iterable

from unibudget.models.ledger import (
    FinancialSummary,
    PaymentMethod,
    Transaction,
    TransactionType,
)


def summarize(transactions: Iterable[Transaction]) -> FinancialSummary:
    """Aggregate income, expense and per-method balances."""
    total_balance = Decimal("0")
    cash_balance = Decimal("0")
    card_balance = Decimal("0")
    total_income = Decimal("0")
    total_expense = Decimal("0")

    for t in transactions:
        if t.type == TransactionType.INCOME:
            signed = t.amount
            total_income += t.amount
        else:
            signed = -t.amount
            total_expense += t.amount

        total_balance += signed
        if t.method == PaymentMethod.CASH:
            cash_balance += signed
        else:
            card_balance += signed

    return FinancialSummary(
        total_balance=total_balance,
        cash_balance=cash_balance,
        card_balance=card_balance,
        total_income=total_income,
        total_expense=total_expense,
    )


def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Transactions ordered by date, most recent first."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)
