"""
Day Record Queries

DESIGN DECISION: Reads are DETERMINISTIC and never recompute anything.
They only return what aggregation has already persisted:
- weekly summary: one entry per day that has a record
- streak info: the latest record's streak state
- history: paginated records, newest first

A day with no record is absent from results, never reported as zero.
"""

import math
from typing import Any, Optional
from uuid import UUID

from goalday.audit import AuditLogger
from goalday.businessday import to_business_date, week_window
from goalday.config import EngineSettings
from goalday.models.day import HistoryPage, StreakInfo, WeeklyDaySummary
from goalday.services.storage import DayRecordStorageInterface, StorageError


class QueryExecutionError(Exception):
    """Error during query execution."""
    pass


class DayRecordQueries:
    """
    Read-side queries over persisted GoalAlignedDay records.

    GUARANTEES:
    - Only returns real data from storage
    - Never invents or estimates
    - Empty results when nothing matches
    """

    def __init__(
        self,
        storage: DayRecordStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or EngineSettings()

    async def weekly_summary(
        self,
        user_id: str,
        reference: Any,
        correlation_id: Optional[UUID] = None,
    ) -> list[WeeklyDaySummary]:
        """
        Scores for the Sunday-to-Saturday week containing reference.

        Raises:
            InvalidDateError: If reference cannot be parsed
        """
        week = week_window(reference)
        try:
            records = await self._storage.find_range(user_id, week.start_date, week.end_date)
        except StorageError as e:
            raise await self._failed(user_id, "weekly_summary", e, correlation_id) from e

        summary = [
            WeeklyDaySummary(
                date=record.date,
                score24=record.score24,
                score_percentage=record.score_percentage,
                total_aligned_minutes=record.total_aligned_minutes,
            )
            for record in sorted(records, key=lambda r: r.date)
        ]
        await self._audit(user_id, "weekly_summary", len(summary), correlation_id)
        return summary

    async def streak_info(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> StreakInfo:
        """Streak state of the user's most recent record, or zeros."""
        try:
            latest = await self._storage.find_latest(user_id)
        except StorageError as e:
            raise await self._failed(user_id, "streak_info", e, correlation_id) from e

        await self._audit(user_id, "streak_info", 0 if latest is None else 1, correlation_id)

        if latest is None:
            return StreakInfo(
                target_minutes_per_day=self._settings.default_target_minutes_per_day,
            )
        return StreakInfo(
            current_streak=latest.current_streak,
            longest_streak=latest.longest_streak,
            target_minutes_per_day=latest.target_minutes_per_day,
            last_recorded_date=latest.date,
        )

    async def history(
        self,
        user_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        start: Any = None,
        end: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> HistoryPage:
        """
        Paginated day records, newest first.

        Args:
            page: 1-based page number; values below 1 are treated as 1
            limit: Page size, defaults to the configured history page size
            start: Optional inclusive lower bound (any accepted date input)
            end: Optional inclusive upper bound
        """
        page = max(1, page)
        limit = min(max(1, limit or self._settings.history_page_size), 200)
        date_from = to_business_date(start) if start is not None else None
        date_to = to_business_date(end) if end is not None else None

        try:
            total = await self._storage.count_records(user_id, date_from, date_to)
            records = await self._storage.list_records(
                user_id,
                date_from=date_from,
                date_to=date_to,
                limit=limit,
                offset=(page - 1) * limit,
            )
        except StorageError as e:
            raise await self._failed(user_id, "history", e, correlation_id) from e

        await self._audit(user_id, "history", len(records), correlation_id)

        return HistoryPage(
            records=records,
            total=total,
            total_pages=math.ceil(total / limit),
            current_page=page,
        )

    async def _audit(
        self,
        user_id: str,
        query_type: str,
        result_count: int,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_query_executed(
                user_id=user_id,
                query_type=query_type,
                result_count=result_count,
                correlation_id=correlation_id,
            )

    async def _failed(
        self,
        user_id: str,
        query_type: str,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> QueryExecutionError:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type="query_failed",
                error_message=str(error),
                details={"user_id": user_id, "query_type": query_type},
                correlation_id=correlation_id,
            )
        return QueryExecutionError(f"{query_type} query failed: {error}")
