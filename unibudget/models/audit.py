"""
Audit Models for UniBudget

Every change to the ledger produces an AuditEvent. Events are written
to the structured log only; they are not stored alongside the ledger
data, so a full reset leaves the log history intact.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from unibudget.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"

    # Budget limits
    LIMIT_SAVED = "limit_saved"
    LIMIT_DELETED = "limit_deleted"

    # Categories and settings
    CUSTOM_CATEGORY_SAVED = "custom_category_saved"
    THEME_SAVED = "theme_saved"

    # Whole-store operations
    DATA_RESET = "data_reset"
    RESET_FAILED = "reset_failed"
    IMPORT_COMPLETED = "import_completed"
    EXPORT_COMPLETED = "export_completed"

    # Failures and degraded states
    VALIDATION_FAILED = "validation_failed"
    WRITE_FAILED = "write_failed"
    STORE_DEGRADED = "store_degraded"
    ADVISOR_FAILED = "advisor_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which collection and record this is about
    collection: Optional[str] = None
    record_key: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "record_key": self.record_key,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(transaction_id, amount, "EXPENSE")
        await audit_logger.log(event)
    """

    @staticmethod
    def transaction_saved(transaction_id: UUID, amount: str, transaction_type: str, is_new: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            collection="transactions",
            record_key=str(transaction_id),
            description="Transaction created" if is_new else "Transaction updated",
            details={"amount": amount, "type": transaction_type, "is_new": is_new},
        )

    @staticmethod
    def transaction_deleted(transaction_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            collection="transactions",
            record_key=str(transaction_id),
            description="Transaction deleted",
        )

    @staticmethod
    def limit_saved(category: str, limit: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIMIT_SAVED,
            collection="limits",
            record_key=category,
            description=f"Budget limit set for {category}",
            details={"limit": limit},
        )

    @staticmethod
    def limit_deleted(category: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIMIT_DELETED,
            collection="limits",
            record_key=category,
            description=f"Budget limit removed for {category}",
        )

    @staticmethod
    def custom_category_saved(category_id: UUID, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CUSTOM_CATEGORY_SAVED,
            collection="customCategories",
            record_key=str(category_id),
            description=f"Custom category '{name}' added",
        )

    @staticmethod
    def theme_saved(theme: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.THEME_SAVED,
            collection="settings",
            record_key="theme",
            description=f"Theme set to {theme}",
        )

    @staticmethod
    def data_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_RESET,
            severity=AuditSeverity.WARNING,
            description="All ledger data cleared",
        )

    @staticmethod
    def reset_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESET_FAILED,
            severity=AuditSeverity.ERROR,
            description="Clearing ledger data failed; nothing was changed",
            error_message=error_message,
        )

    @staticmethod
    def import_completed(imported: int, skipped: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=AuditSeverity.INFO if imported else AuditSeverity.WARNING,
            collection="transactions",
            description=f"CSV import finished: {imported} imported, {skipped} skipped",
            details={"imported": imported, "skipped": skipped},
        )

    @staticmethod
    def export_completed(count: int, destination: Optional[str] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_COMPLETED,
            collection="transactions",
            description=f"Exported {count} transactions",
            details={"count": count, "destination": destination},
        )

    @staticmethod
    def validation_failed(operation: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Rejected {operation}: {len(issues)} issue(s)",
            details={"operation": operation, "issues": issues},
        )

    @staticmethod
    def write_failed(operation: str, collection: str, record_key: Optional[str], error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            record_key=record_key,
            description=f"Durable write failed for {operation}; local change reverted",
            error_message=error_message,
        )

    @staticmethod
    def store_degraded(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_DEGRADED,
            severity=AuditSeverity.WARNING,
            description="Record store unavailable; using in-memory storage for this session",
            error_message=error_message,
        )

    @staticmethod
    def advisor_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVISOR_FAILED,
            severity=AuditSeverity.WARNING,
            description="Advisor request failed; fallback message returned",
            error_message=error_message,
        )
