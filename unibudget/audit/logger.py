"""
Audit Logger

Every change to the ledger is recorded as a structured log line:
entries saved and deleted, limits, custom categories, theme changes,
resets, imports and exports, and the failures around them.

Audit events are log-only. They are rendered as JSON through structlog's
stdlib integration, so the usual logging handlers decide where they go.
"""

import logging
from typing import Optional

import structlog

from unibudget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: Optional[str] = None) -> str:
    """
    Route log lines to stderr at the configured level.

    Debug mode forces DEBUG. Returns the level that was applied.
    """
    if log_level is None:
        from unibudget.config import get_settings
        app = get_settings().app
        log_level = "DEBUG" if app.debug_mode else app.log_level
    log_level = log_level.upper()
    logging.basicConfig(format="%(message)s", level=log_level)
    return log_level


class AuditLogger:
    """
    Central audit logging service.

    Writes each event to the structured local log at the event's severity.
    """

    def __init__(self, logger_name: str = "unibudget.audit"):
        self._logger = structlog.get_logger(logger_name)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True once the event has been handed to the logger.
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        return True

    async def log_write_failed(
        self,
        operation: str,
        collection: str,
        record_key: Optional[str],
        error_message: str,
    ) -> None:
        """Log a durable write that did not go through."""
        event = AuditEventBuilder.write_failed(
            operation=operation,
            collection=collection,
            record_key=record_key,
            error_message=error_message,
        )
        await self.log(event)

    async def log_validation_failed(self, operation: str, issues: list[dict]) -> None:
        """Log an entry rejected by validation."""
        await self.log(AuditEventBuilder.validation_failed(operation=operation, issues=issues))
