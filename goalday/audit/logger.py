"""
Audit Logger

DESIGN DECISION: Every aggregation run is logged.
This provides:
1. Traceability of how each day record came to be
2. Debugging capability for streak disputes
3. A record of rejected inputs and failed sources

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash an aggregation if logging fails)
- Supports correlation IDs to trace all events of one run
"""

from datetime import date
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from goalday.models.audit import AuditEvent, AuditEventBuilder
from goalday.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("goalday.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_aggregation_started(
        self,
        user_id: str,
        business_date: date,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.aggregation_started(
            user_id=user_id,
            business_date=business_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_aggregation_completed(
        self,
        user_id: str,
        business_date: date,
        total_minutes: float,
        score24: float,
        current_streak: int,
        correlation_id: UUID,
    ) -> None:
        """Log a finished aggregation with its headline numbers."""
        event = AuditEventBuilder.aggregation_completed(
            user_id=user_id,
            business_date=business_date,
            total_minutes=total_minutes,
            score24=score24,
            current_streak=current_streak,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_invalid_date(
        self,
        raw_value: Any,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected reference date."""
        event = AuditEventBuilder.invalid_date(
            raw_value=raw_value,
            error_message=error_message,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_source_unavailable(
        self,
        user_id: str,
        business_date: date,
        source: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a read collaborator failure."""
        event = AuditEventBuilder.source_unavailable(
            user_id=user_id,
            business_date=business_date,
            source=source,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_day_record_saved(
        self,
        user_id: str,
        business_date: date,
        version: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.day_record_saved(
            user_id=user_id,
            business_date=business_date,
            version=version,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_persist_conflict(
        self,
        user_id: str,
        business_date: date,
        expected_version: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.persist_conflict(
            user_id=user_id,
            business_date=business_date,
            expected_version=expected_version,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_validation_failed(
        self,
        user_id: str,
        business_date: date,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a computed record that was refused before persisting."""
        event = AuditEventBuilder.record_validation_failed(
            user_id=user_id,
            business_date=business_date,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_query_executed(
        self,
        user_id: str,
        query_type: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log query execution."""
        event = AuditEventBuilder.query_executed(
            user_id=user_id,
            query_type=query_type,
            result_count=result_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of an aggregation or query.
    Pass it through all subsequent operations.
    """
    return uuid4()
