"""
Budget Tracker

Compares current-month spending per category with the configured limits.

"Current month" is the calendar month and year of the wall clock at the
moment of the query, in the caller's timezone. Transaction dates are
converted into that zone before comparing, so an expense at 23:30 local
on the 31st counts for that month even though it is already the 1st in
UTC.

Category matching is an exact string comparison.
"""

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Iterable, Optional

from unibudget.models.ledger import (
    BudgetLimit,
    BudgetStatus,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")


def local_now(tz: Optional[tzinfo] = None) -> datetime:
    """Aware wall-clock time in ``tz`` (system zone when None)."""
    if tz is not None:
        return datetime.now(tz)
    return datetime.now().astimezone()


def _aware(value: datetime) -> datetime:
    # naive "now" values are system local time
    return value if value.tzinfo is not None else value.astimezone()


def in_same_month(value: datetime, reference: datetime) -> bool:
    """Does ``value`` fall in the calendar month of ``reference``?"""
    reference = _aware(reference)
    local = _aware(value).astimezone(reference.tzinfo)
    return local.year == reference.year and local.month == reference.month


def current_month_spending(
    transactions: Iterable[Transaction],
    now: datetime,
) -> dict[str, Decimal]:
    """Sum of this month's expenses, keyed by category string."""
    spending: dict[str, Decimal] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        if not in_same_month(t.date, now):
            continue
        spending[t.category] = spending.get(t.category, ZERO) + t.amount
    return spending


def progress_fraction(spend: Decimal, limit: Decimal) -> float:
    """
    Share of the limit used, capped at 1.0.

    A non-positive limit counts as fully used once anything is spent.
    """
    if limit <= 0:
        return 1.0 if spend > 0 else 0.0
    if spend <= 0:
        return 0.0
    return float(min(spend / limit, Decimal("1")))


def budget_status(limit: BudgetLimit, spending: dict[str, Decimal]) -> BudgetStatus:
    spend = spending.get(limit.category, ZERO)
    return BudgetStatus(
        category=limit.category,
        limit=limit.limit,
        spend=spend,
        remaining=limit.limit - spend,
        is_over=spend > limit.limit,
        progress=progress_fraction(spend, limit.limit),
    )


def track_budgets(
    limits: Iterable[BudgetLimit],
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> list[BudgetStatus]:
    """One status per limit, evaluated against ``now`` (default: the wall clock)."""
    spending = current_month_spending(transactions, now or local_now())
    return [budget_status(limit, spending) for limit in limits]
