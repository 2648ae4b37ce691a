"""Entry validation."""

from unibudget.validation.validator import LedgerValidationError, TransactionValidator

__all__ = [
    "LedgerValidationError",
    "TransactionValidator",
]
