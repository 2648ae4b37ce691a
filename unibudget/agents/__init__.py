"""AI agents package."""

from unibudget.agents.advisor import (
    EMPTY_ADVICE,
    FALLBACK_ADVICE,
    FinancialAdvisor,
)

__all__ = [
    "EMPTY_ADVICE",
    "FALLBACK_ADVICE",
    "FinancialAdvisor",
]
