"""Audit logging package."""

from unibudget.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
