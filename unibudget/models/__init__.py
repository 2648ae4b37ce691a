"""
Data Models Package

All records the ledger stores and all views it derives are pydantic models.
"""

from unibudget.models.ledger import (
    AppTheme,
    BudgetLimit,
    BudgetStatus,
    CategoryTotal,
    CumulativePoint,
    DailyTotals,
    FinancialSummary,
    ImportResult,
    MonthlyReport,
    PaymentMethod,
    SettingRecord,
    THEME_SETTING_KEY,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from unibudget.models.categories import (
    BuiltinCategory,
    BuiltinCategoryInfo,
    CategoryInfo,
    CustomCategory,
    CustomCategoryInfo,
    CustomIcon,
    UnknownCategoryInfo,
    all_category_names,
    resolve_category,
)
from unibudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AppTheme",
    "BudgetLimit",
    "BudgetStatus",
    "CategoryTotal",
    "CumulativePoint",
    "DailyTotals",
    "FinancialSummary",
    "ImportResult",
    "MonthlyReport",
    "PaymentMethod",
    "SettingRecord",
    "THEME_SETTING_KEY",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Categories
    "BuiltinCategory",
    "BuiltinCategoryInfo",
    "CategoryInfo",
    "CustomCategory",
    "CustomCategoryInfo",
    "CustomIcon",
    "UnknownCategoryInfo",
    "all_category_names",
    "resolve_category",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
