"""
Tests for UniBudget data models.

Test strategy:
1. Unit tests for individual components (models, validators, queries)
2. Store tests against a real SQLite file in a temporary directory
3. No real API calls in tests (the advisor model is stubbed)
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from unibudget.models.ledger import (
    AppTheme,
    BudgetLimit,
    FinancialSummary,
    MonthlyReport,
    PaymentMethod,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from unibudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        t = Transaction(
            amount=Decimal("250.50"),
            type=TransactionType.EXPENSE,
            category="Food",
            method=PaymentMethod.CASH,
            date=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        )
        assert t.amount == Decimal("250.50")
        assert t.note == ""
        assert t.id is not None

    def test_transaction_date_normalised_to_utc(self):
        """Aware dates in other zones are converted to UTC."""
        ist = timezone(timedelta(hours=5, minutes=30))
        t = Transaction(
            amount=Decimal("10"),
            type=TransactionType.INCOME,
            category="Allowance",
            method=PaymentMethod.CARD,
            date=datetime(2024, 1, 15, 10, 30, tzinfo=ist),
        )
        assert t.date == datetime(2024, 1, 15, 5, 0, tzinfo=timezone.utc)
        assert t.date.utcoffset() == timedelta(0)

    def test_naive_date_taken_as_utc(self):
        t = Transaction(
            amount=Decimal("10"),
            type=TransactionType.INCOME,
            category="Allowance",
            method=PaymentMethod.CARD,
            date=datetime(2024, 1, 15, 10, 30),
        )
        assert t.date.tzinfo is not None
        assert t.date.hour == 10

    def test_transaction_rejects_non_finite_amount(self):
        with pytest.raises(ValueError):
            Transaction(
                amount=Decimal("NaN"),
                type=TransactionType.EXPENSE,
                category="Food",
                method=PaymentMethod.CASH,
                date=datetime(2024, 1, 15, tzinfo=timezone.utc),
            )

    def test_transaction_json_roundtrip(self):
        """Stored JSON reproduces the record exactly."""
        t = Transaction(
            amount=Decimal("0.10"),
            type=TransactionType.EXPENSE,
            category="Transport",
            method=PaymentMethod.CARD,
            date=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
            note='Bus "express", late',
        )
        restored = Transaction.model_validate_json(t.model_dump_json())
        assert restored == t
        assert restored.amount == Decimal("0.10")

    def test_from_draft_keeps_given_id(self):
        existing_id = uuid4()
        draft = TransactionDraft(
            amount=Decimal("5"),
            category="Fun",
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        t = Transaction.from_draft(draft, existing_id)
        assert t.id == existing_id
        assert t.type == TransactionType.EXPENSE
        assert t.method == PaymentMethod.CASH

    def test_from_draft_mints_id(self):
        draft = TransactionDraft(
            amount=Decimal("5"),
            category="Fun",
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert Transaction.from_draft(draft).id != Transaction.from_draft(draft).id

    def test_budget_limit_strips_category(self):
        limit = BudgetLimit(category="  Food  ", limit=Decimal("500"))
        assert limit.category == "Food"

    def test_budget_limit_requires_category(self):
        with pytest.raises(ValueError):
            BudgetLimit(category="", limit=Decimal("500"))

    def test_theme_values(self):
        assert AppTheme("dark") == AppTheme.DARK
        assert {t.value for t in AppTheme} == {"light", "dark", "system"}


class TestDerivedModels:
    """Tests for summary and report models."""

    def test_summary_available_for(self):
        summary = FinancialSummary(
            total_balance=Decimal("150"),
            cash_balance=Decimal("100"),
            card_balance=Decimal("50"),
        )
        assert summary.available_for(PaymentMethod.CASH) == Decimal("100")
        assert summary.available_for(PaymentMethod.CARD) == Decimal("50")

    def test_monthly_report_first_day(self):
        report = MonthlyReport(year=2024, month=2)
        assert report.first_day.isoformat() == "2024-02-01"

    def test_monthly_report_rejects_bad_month(self):
        with pytest.raises(ValueError):
            MonthlyReport(year=2024, month=13)


class TestValidationModels:
    """Tests for validation-related models."""

    def test_validation_result_properties(self):
        """Test ValidationResult computed properties."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Please enter a valid amount greater than 0.",
                    severity="error",
                ),
                ValidationIssue(
                    field="note",
                    issue_type="suspicious_value",
                    message="Note is long",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert result.first_error == "Please enter a valid amount greater than 0."

    def test_issue_rejects_unknown_severity(self):
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.DATA_RESET,
            description="All data cleared",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_to_log_dict(self):
        tid = uuid4()
        event = AuditEventBuilder.transaction_saved(tid, "100", "EXPENSE", is_new=True)
        log = event.to_log_dict()
        assert log["event_type"] == "transaction_saved"
        assert log["record_key"] == str(tid)
        assert log["collection"] == "transactions"

    def test_builder_write_failed_is_error(self):
        event = AuditEventBuilder.write_failed("save_transaction", "transactions", "abc", "disk full")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"
