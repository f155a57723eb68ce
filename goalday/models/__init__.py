"""
Data Models Package

This package contains all Pydantic models used by the Goal-Aligned Day engine.
All data flowing through the system must conform to these schemas.
"""

from goalday.models.activity import (
    CheckinRecord,
    Goal,
    GoalId,
    Habit,
    HabitCheckin,
    Task,
    TaskId,
    TimeBlock,
    TimeBlockEntry,
    ensure_utc,
    normalize_id,
)
from goalday.models.day import (
    MINUTES_PER_DAY,
    DailyMetrics,
    GoalAlignedDay,
    GoalBreakdownEntry,
    HistoryPage,
    StreakInfo,
    ValidationIssue,
    ValidationResult,
    WeeklyDaySummary,
)
from goalday.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Activity models
    "CheckinRecord",
    "Goal",
    "GoalId",
    "Habit",
    "HabitCheckin",
    "Task",
    "TaskId",
    "TimeBlock",
    "TimeBlockEntry",
    "ensure_utc",
    "normalize_id",
    # Day record models
    "MINUTES_PER_DAY",
    "DailyMetrics",
    "GoalAlignedDay",
    "GoalBreakdownEntry",
    "HistoryPage",
    "StreakInfo",
    "ValidationIssue",
    "ValidationResult",
    "WeeklyDaySummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
