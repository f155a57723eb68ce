"""
Audit Models for Goal-Aligned Day

Every aggregation run is logged for audit purposes.
This provides:
1. Traceability of how a day's score was produced
2. Debugging information when a source or the store fails
3. Ability to reconstruct streak history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the aggregation pipeline has its own event type.
    """
    # Aggregation
    AGGREGATION_STARTED = "aggregation_started"
    AGGREGATION_COMPLETED = "aggregation_completed"
    INVALID_DATE = "invalid_date"
    SOURCE_UNAVAILABLE = "source_unavailable"

    # Persistence
    DAY_RECORD_SAVED = "day_record_saved"
    PERSIST_CONFLICT = "persist_conflict"
    RECORD_VALIDATION_FAILED = "record_validation_failed"

    # Read queries
    QUERY_EXECUTED = "query_executed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - who and which day is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="User whose data was aggregated or queried"
    )
    business_date: Optional[date] = Field(
        default=None,
        description="Business date of the day record involved"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one aggregation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, business_date,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.business_date.isoformat() if self.business_date else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.aggregation_started(user_id, day, correlation_id)
        event = AuditEventBuilder.day_record_saved(user_id, day, version, correlation_id)
    """

    @staticmethod
    def aggregation_started(
        user_id: str,
        business_date: date,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AGGREGATION_STARTED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            business_date=business_date,
            correlation_id=correlation_id,
            description=f"Aggregation started for {business_date.isoformat()}",
        )

    @staticmethod
    def aggregation_completed(
        user_id: str,
        business_date: date,
        total_minutes: float,
        score24: float,
        current_streak: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AGGREGATION_COMPLETED,
            user_id=user_id,
            business_date=business_date,
            correlation_id=correlation_id,
            description=f"Aggregated {total_minutes:g} aligned minutes (score {score24:g}/24)",
            details={
                "total_aligned_minutes": total_minutes,
                "score24": score24,
                "current_streak": current_streak,
            },
        )

    @staticmethod
    def invalid_date(
        raw_value: Any,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVALID_DATE,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Aggregation rejected: invalid date input",
            details={
                "raw_value": repr(raw_value),
            },
            error_message=error_message,
        )

    @staticmethod
    def source_unavailable(
        user_id: str,
        business_date: date,
        source: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SOURCE_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            business_date=business_date,
            correlation_id=correlation_id,
            description=f"Aggregation aborted: {source} source unavailable",
            details={
                "source": source,
            },
            error_message=error_message,
        )

    @staticmethod
    def day_record_saved(
        user_id: str,
        business_date: date,
        version: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DAY_RECORD_SAVED,
            user_id=user_id,
            business_date=business_date,
            correlation_id=correlation_id,
            description=f"Day record saved at version {version}",
            details={
                "version": version,
            },
        )

    @staticmethod
    def persist_conflict(
        user_id: str,
        business_date: date,
        expected_version: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSIST_CONFLICT,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            business_date=business_date,
            correlation_id=correlation_id,
            description="Concurrent update of the day record; caller may retry",
            details={
                "expected_version": expected_version,
            },
        )

    @staticmethod
    def record_validation_failed(
        user_id: str,
        business_date: date,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_VALIDATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            business_date=business_date,
            correlation_id=correlation_id,
            description=f"Day record failed validation with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def query_executed(
        user_id: str,
        query_type: str,
        result_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Query executed: {query_type} returned {result_count} results",
            details={
                "query_type": query_type,
                "result_count": result_count,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
