"""
Entry Validation

Everything the user submits passes through here before it reaches the
store. Two kinds of checks:

FIELD CHECKS:
- Amount present and greater than zero
- Category chosen
- Date chosen

BALANCE CHECK (expenses only):
- The wallet the payment method draws from must cover the amount.
- When an existing expense paid with the same method is being edited,
  its original amount is refunded before comparing.

Validation never fixes anything. It reports issues and the caller
decides; the coordinator refuses the write when any error is present.
"""

from decimal import Decimal
from typing import Optional

from unibudget.config import get_settings
from unibudget.models.ledger import (
    BudgetLimit,
    FinancialSummary,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


class LedgerValidationError(Exception):
    """An entry was rejected before any persistence attempt."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.first_error or "Validation failed")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


def _result(issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
    )


class TransactionValidator:
    """
    Validates transaction drafts, budget limits and custom categories.
    """

    def __init__(self, currency_symbol: Optional[str] = None):
        if currency_symbol is None:
            currency_symbol = get_settings().app.currency_symbol
        self._currency = currency_symbol

    def _check_fields(self, draft: TransactionDraft) -> list[ValidationIssue]:
        issues = []

        if draft.amount is None or not draft.amount.is_finite() or draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please enter a valid amount greater than 0.",
            ))

        if not draft.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please select a category.",
            ))

        if draft.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Please select a date and time.",
            ))

        return issues

    def available_balance(
        self,
        draft: TransactionDraft,
        summary: FinancialSummary,
        existing: Optional[Transaction] = None,
    ) -> Decimal:
        """Balance the draft may spend, with the edited expense refunded."""
        available = summary.available_for(draft.method)
        if (
            existing is not None
            and existing.type == TransactionType.EXPENSE
            and existing.method == draft.method
        ):
            available += existing.amount
        return available

    def _check_balance(
        self,
        draft: TransactionDraft,
        summary: FinancialSummary,
        existing: Optional[Transaction],
    ) -> list[ValidationIssue]:
        if draft.type != TransactionType.EXPENSE:
            return []

        available = self.available_balance(draft, summary, existing)
        if draft.amount > available:
            return [ValidationIssue(
                field="amount",
                issue_type="insufficient_funds",
                message=(
                    f"Insufficient funds in {draft.method.value}. "
                    f"Available: {self._currency}{available:.2f}"
                ),
            )]
        return []

    def validate_transaction(
        self,
        draft: TransactionDraft,
        summary: FinancialSummary,
        existing: Optional[Transaction] = None,
    ) -> ValidationResult:
        """
        Validate a draft against the current summary.

        Args:
            draft: The entry as submitted
            summary: Financial summary of the ledger as it stands
            existing: The stored transaction being edited, if any

        Returns:
            ValidationResult with all issues found
        """
        issues = self._check_fields(draft)

        # balance only makes sense for a usable amount
        if not any(issue.field == "amount" for issue in issues):
            issues.extend(self._check_balance(draft, summary, existing))

        return _result(issues)

    def validate_limit(self, limit: BudgetLimit) -> ValidationResult:
        issues = []
        if limit.limit <= 0:
            issues.append(ValidationIssue(
                field="limit",
                issue_type="invalid_value",
                message="Please enter a valid limit greater than 0.",
            ))
        return _result(issues)

    def validate_custom_category(self, name: str) -> ValidationResult:
        issues = []
        if not name or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please enter a category name.",
            ))
        return _result(issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short text suitable for showing next to the entry form."""
        if result.is_valid:
            return "✅ All checks passed!"
        lines = ["❌ Please fix the following:"]
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"  • {issue.message}")
        return "\n".join(lines)
