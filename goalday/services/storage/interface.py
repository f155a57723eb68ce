"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for every read and write the
engine performs. This allows us to:
1. Swap Google Sheets for a real document store later
2. Use in-memory storage for testing
3. Keep the aggregation logic decoupled from storage implementation

The four activity sources are read-only from the engine's point of view.
The day record store is the only thing the engine writes.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from goalday.models.activity import Goal, Habit, Task, TimeBlockEntry
from goalday.models.audit import AuditEvent
from goalday.models.day import GoalAlignedDay


class GoalSourceInterface(ABC):
    """Read access to the goal registry."""

    @abstractmethod
    async def list_active_goals(self, user_id: str) -> list[Goal]:
        """
        List the user's active goals.

        Raises:
            StorageError: If the read fails
        """
        pass


class TaskSourceInterface(ABC):
    """Read access to task records."""

    @abstractmethod
    async def list_tasks_completed_in_window(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Task]:
        """
        List tasks whose completion instant falls in [start, end].

        Args:
            user_id: Owner of the tasks
            start: Window start (UTC, inclusive)
            end: Window end (UTC, inclusive)
        """
        pass


class TimeBlockSourceInterface(ABC):
    """Read access to time-block entries."""

    @abstractmethod
    async def list_time_block_entries_overlapping(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[TimeBlockEntry]:
        """
        List entries of every TimeBlock document whose day overlaps [start, end].
        """
        pass


class HabitSourceInterface(ABC):
    """Read access to habits and their embedded check-ins."""

    @abstractmethod
    async def list_active_habits_with_goal(self, user_id: str) -> list[Habit]:
        """
        List active habits linked to a goal, each with all its check-ins.

        Filtering check-ins to a day is the caller's job.
        """
        pass


class DayRecordStorageInterface(ABC):
    """
    Storage for GoalAlignedDay records, one per (user, business date).

    upsert() is an optimistic compare-and-set on GoalAlignedDay.version.
    """

    @abstractmethod
    async def find_one(self, user_id: str, day: date) -> Optional[GoalAlignedDay]:
        """Get the record for one business date, if any."""
        pass

    @abstractmethod
    async def upsert(self, record: GoalAlignedDay) -> GoalAlignedDay:
        """
        Insert or replace the record for (record.user_id, record.date).

        Succeeds only when the stored version equals record.version (a
        missing record counts as version 0). The stored copy gets
        version + 1 and is returned.

        Raises:
            PersistConflictError: If another writer got there first
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def find_latest_before(self, user_id: str, day: date) -> Optional[GoalAlignedDay]:
        """Get the most recent record strictly before a business date."""
        pass

    @abstractmethod
    async def find_latest(self, user_id: str) -> Optional[GoalAlignedDay]:
        """Get the user's most recent record."""
        pass

    @abstractmethod
    async def find_range(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> list[GoalAlignedDay]:
        """Get records with start <= date <= end, oldest first."""
        pass

    @abstractmethod
    async def list_records(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 30,
        offset: int = 0,
    ) -> list[GoalAlignedDay]:
        """List records newest first, optionally bounded by date."""
        pass

    @abstractmethod
    async def count_records(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        """Count records matching the same bounds as list_records()."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for one aggregation run, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class MalformedRowError(StorageError):
    """A stored row could not be parsed into its model."""

    def __init__(self, collection: str, row_number: int, reason: str):
        super().__init__(f"Malformed {collection} row {row_number}: {reason}")
        self.collection = collection
        self.row_number = row_number


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class PersistConflictError(StorageError):
    """
    The day record changed between read and write.

    Retryable: the caller can re-run the aggregation, which re-reads the
    record. The engine itself never retries, since a blind retry could
    apply the streak transition twice.
    """

    retryable = True

    def __init__(self, user_id: str, day: date, expected_version: int, actual_version: int):
        super().__init__(
            f"Day record {user_id}/{day.isoformat()} is at version "
            f"{actual_version}, expected {expected_version}"
        )
        self.user_id = user_id
        self.day = day
        self.expected_version = expected_version
        self.actual_version = actual_version
