"""
Monthly Report

Income/expense statistics for one calendar month in local time: totals,
per-method flow, the expense breakdown by category and day-by-day series.
"""

import calendar
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Iterable, Optional

from unibudget.models.ledger import (
    CategoryTotal,
    CumulativePoint,
    DailyTotals,
    MonthlyReport,
    PaymentMethod,
    Transaction,
    TransactionType,
)
from unibudget.queries.budget import local_now


def _local(value: datetime, tz: Optional[tzinfo]) -> datetime:
    return value.astimezone(tz) if tz is not None else value.astimezone()


def monthly_report(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> MonthlyReport:
    """
    Build the report for ``year``/``month``.

    The cumulative expense series stops at today when the month is the
    current one.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    now = now or local_now(tz)
    now_local = _local(now, tz) if now.tzinfo is not None else now
    days_in_month = calendar.monthrange(year, month)[1]

    report = MonthlyReport(year=year, month=month)
    daily = [DailyTotals(day=d) for d in range(1, days_in_month + 1)]
    breakdown: dict[str, Decimal] = {}

    for t in transactions:
        when = _local(t.date, tz)
        if when.year != year or when.month != month:
            continue

        report.transaction_count += 1
        day = daily[when.day - 1]
        signed = t.amount

        if t.type == TransactionType.INCOME:
            report.income += t.amount
            day.income += t.amount
        else:
            signed = -t.amount
            report.expense += t.amount
            day.expense += t.amount
            breakdown[t.category] = breakdown.get(t.category, Decimal("0")) + t.amount

        if t.method == PaymentMethod.CASH:
            report.cash_flow += signed
        else:
            report.card_flow += signed

    report.net = report.income - report.expense
    report.daily = daily
    report.expense_breakdown = [
        CategoryTotal(category=category, amount=amount)
        for category, amount in sorted(breakdown.items(), key=lambda item: item[1], reverse=True)
    ]

    is_current_month = now_local.year == year and now_local.month == month
    last_day = now_local.day if is_current_month else days_in_month
    running = Decimal("0")
    for day in daily[:last_day]:
        running += day.expense
        report.cumulative_expense.append(CumulativePoint(day=day.day, expense=running))

    return report
