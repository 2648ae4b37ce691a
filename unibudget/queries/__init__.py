"""Derived views over the transaction log."""

from unibudget.queries.budget import (
    budget_status,
    current_month_spending,
    local_now,
    progress_fraction,
    track_budgets,
)
from unibudget.queries.monthly import monthly_report
from unibudget.queries.summary import sort_newest_first, summarize

__all__ = [
    "budget_status",
    "current_month_spending",
    "local_now",
    "monthly_report",
    "progress_fraction",
    "sort_newest_first",
    "summarize",
    "track_budgets",
]
