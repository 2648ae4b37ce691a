"""
Core Data Models for UniBudget

These models define the schemas for every record the ledger stores
and every view it derives:
1. Stored records: Transaction, BudgetLimit, CustomCategory, SettingRecord
2. Derived views: FinancialSummary, BudgetStatus, MonthlyReport
3. Entry validation results: ValidationIssue, ValidationResult

Amounts are Decimal end to end. Timestamps are timezone-aware and
normalised to UTC when a model is built.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalise a datetime to aware UTC (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class PaymentMethod(str, Enum):
    """Where the money moved: the cash wallet or the card account."""
    CASH = "CASH"
    CARD = "CARD"


class AppTheme(str, Enum):
    """Theme preference stored in the settings collection."""
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


THEME_SETTING_KEY = "theme"


# =============================================================================
# STORED RECORDS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction as entered, before it has an identity.

    Nothing is enforced here beyond types: the entry validator decides
    whether a draft may become a Transaction.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = None
    type: TransactionType = TransactionType.EXPENSE
    category: str = ""
    method: PaymentMethod = PaymentMethod.CASH
    date: Optional[datetime] = None
    note: str = ""


class Transaction(BaseModel):
    """
    A single income or expense entry.

    Identity is ``id``; every other field is replaced wholesale on edit.
    The store does not enforce positive amounts, so neither does the
    model: that check belongs to the entry validator.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    amount: Decimal = Field(
        ...,
        allow_inf_nan=False,
        description="Amount in the ledger's currency"
    )
    type: TransactionType
    category: str = Field(
        ...,
        description="Built-in category value or a custom category name"
    )
    method: PaymentMethod
    date: datetime = Field(
        ...,
        description="When the transaction happened (UTC)"
    )
    note: str = Field(
        default="",
        description="Free-form note, may be empty"
    )

    @field_validator('date')
    @classmethod
    def normalise_date(cls, v: datetime) -> datetime:
        return to_utc(v)

    @classmethod
    def from_draft(cls, draft: TransactionDraft, transaction_id: Optional[UUID] = None) -> "Transaction":
        """Build a transaction from a validated draft, minting an ID if needed."""
        return cls(
            id=transaction_id or uuid4(),
            amount=draft.amount,
            type=draft.type,
            category=draft.category,
            method=draft.method,
            date=draft.date,
            note=draft.note or "",
        )


class BudgetLimit(BaseModel):
    """
    Monthly spending limit for one category.

    Identity is ``category``: at most one limit exists per category.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = Field(
        ...,
        min_length=1,
        description="Category the limit applies to (exact string match)"
    )
    limit: Decimal = Field(
        ...,
        allow_inf_nan=False,
        description="Maximum monthly spend"
    )


class SettingRecord(BaseModel):
    """A key/value row in the settings collection."""

    key: str
    value: str


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class FinancialSummary(BaseModel):
    """Balances and totals over the whole transaction log."""

    total_balance: Decimal = Decimal("0")
    cash_balance: Decimal = Decimal("0")
    card_balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")

    def available_for(self, method: PaymentMethod) -> Decimal:
        """Balance of the wallet a payment method draws from."""
        if method == PaymentMethod.CASH:
            return self.cash_balance
        return self.card_balance


class BudgetStatus(BaseModel):
    """Current-month spend against one budget limit."""

    category: str
    limit: Decimal
    spend: Decimal
    remaining: Decimal
    is_over: bool
    progress: float = Field(
        ge=0.0,
        le=1.0,
        description="Fraction of the limit used, capped at 1.0"
    )


class CategoryTotal(BaseModel):
    """Expense total for one category within a period."""

    category: str
    amount: Decimal


class DailyTotals(BaseModel):
    """Income and expense for one calendar day."""

    day: int = Field(ge=1, le=31)
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class CumulativePoint(BaseModel):
    """Running expense total at the end of a day."""

    day: int = Field(ge=1, le=31)
    expense: Decimal


class MonthlyReport(BaseModel):
    """Income/expense statistics for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    cash_flow: Decimal = Decimal("0")
    card_flow: Decimal = Decimal("0")
    transaction_count: int = 0
    expense_breakdown: list[CategoryTotal] = Field(default_factory=list)
    daily: list[DailyTotals] = Field(default_factory=list)
    cumulative_expense: list[CumulativePoint] = Field(default_factory=list)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)


class ImportResult(BaseModel):
    """Aggregate outcome of a CSV import."""

    imported_count: int = Field(ge=0)
    skipped_count: int = Field(default=0, ge=0)
    message: str


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'insufficient_funds')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one entry before it is written."""

    validated_at: datetime = Field(
        default_factory=utc_now
    )
    is_valid: bool
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_error(self) -> Optional[str]:
        for issue in self.issues:
            if issue.severity == "error":
                return issue.message
        return None
