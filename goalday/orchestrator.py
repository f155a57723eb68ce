"""
Main Orchestrator for Goal-Aligned Day

This module ties together all the components and defines the end-to-end
aggregation flow:

    date → window → fetch sources → deduplicate → score → streak
         → validate → persist

DESIGN DECISION: The orchestrator enforces the boundaries:
- Bad dates are rejected before any source is queried
- A failed source aborts the whole run; it is never read as zero activity
- Nothing is persisted unless the computed record passes validation
- Upserts are never retried; a version conflict goes back to the caller
- Every step is audited

All arithmetic lives in goalday.aggregation; this is the "glue" that owns
the read-modify-write of the day record.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog

from goalday.aggregation import compute_day
from goalday.audit import AuditLogger, create_correlation_id
from goalday.businessday import DayWindow, day_window
from goalday.config import EngineSettings, get_settings
from goalday.errors import InconsistentRecordError, InvalidDateError, SourceUnavailableError
from goalday.models.day import DailyMetrics, GoalAlignedDay
from goalday.queries import DayRecordQueries
from goalday.services.storage import (
    DayRecordStorageInterface,
    GoalSourceInterface,
    GoogleSheetsActivitySource,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDayRecordStorage,
    HabitSourceInterface,
    InMemoryActivityStore,
    InMemoryDayRecordStorage,
    PersistConflictError,
    TaskSourceInterface,
    TimeBlockSourceInterface,
)
from goalday.validation import DayRecordValidator

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoalAlignedDayEngine:
    """
    Orchestrates one aggregation of a user's business day.

    Flow:
    1. Resolve the reference date to a business-day window
    2. Fetch goals, tasks, time-block entries and habits
    3. Load the day's record, or start one from the latest earlier record
    4. Recompute (pure) and validate
    5. Upsert with an optimistic version check
    """

    def __init__(
        self,
        goal_source: GoalSourceInterface,
        task_source: TaskSourceInterface,
        time_block_source: TimeBlockSourceInterface,
        habit_source: HabitSourceInterface,
        day_store: DayRecordStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[DayRecordValidator] = None,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._goal_source = goal_source
        self._task_source = task_source
        self._time_block_source = time_block_source
        self._habit_source = habit_source
        self._day_store = day_store
        self._audit_logger = audit_logger
        self._validator = validator or DayRecordValidator()
        self._settings = settings or EngineSettings()
        self._clock = clock or _utcnow

    async def calculate_daily_metrics(
        self,
        user_id: str,
        when: Any,
        correlation_id: Optional[UUID] = None,
    ) -> DailyMetrics:
        """
        Aggregate and persist the goal-aligned metrics for one business day.

        Args:
            user_id: Whose day to aggregate
            when: An instant (datetime or ISO string) or a business date

        Raises:
            InvalidDateError: when is missing or unparseable (nothing queried)
            SourceUnavailableError: A read collaborator failed (nothing persisted)
            InconsistentRecordError: The computed record broke an invariant
            PersistConflictError: Another aggregation saved the day first
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            window = day_window(when)
        except InvalidDateError as e:
            if self._audit_logger:
                await self._audit_logger.log_invalid_date(
                    raw_value=when,
                    error_message=str(e),
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_aggregation_started(
                user_id=user_id,
                business_date=window.business_date,
                correlation_id=correlation_id,
            )

        # Step 1: Fetch every source; any failure aborts the run
        goals = await self._fetch(
            "goals", lambda: self._goal_source.list_active_goals(user_id),
            user_id, window, correlation_id,
        )
        tasks = await self._fetch(
            "tasks", lambda: self._task_source.list_tasks_completed_in_window(
                user_id, window.start, window.end,
            ),
            user_id, window, correlation_id,
        )
        entries = await self._fetch(
            "time_blocks", lambda: self._time_block_source.list_time_block_entries_overlapping(
                user_id, window.start, window.end,
            ),
            user_id, window, correlation_id,
        )
        habits = await self._fetch(
            "habits", lambda: self._habit_source.list_active_habits_with_goal(user_id),
            user_id, window, correlation_id,
        )
        record = await self._fetch(
            "day_records", lambda: self._load_or_start(user_id, window),
            user_id, window, correlation_id,
        )

        # Step 2: Recompute
        updated = compute_day(
            record,
            window,
            goals=goals,
            tasks=tasks,
            entries=entries,
            habits=habits,
            settings=self._settings,
            now=self._clock(),
        )

        # Step 3: Validate before anything is written
        result = self._validator.validate(updated)
        if not result.is_valid:
            issues = [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
                if i.severity == "error"
            ]
            if self._audit_logger:
                await self._audit_logger.log_record_validation_failed(
                    user_id=user_id,
                    business_date=window.business_date,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            raise InconsistentRecordError(
                f"Day record for {window.business_date.isoformat()} failed "
                f"{result.error_count} invariant checks",
                issues=issues,
            )

        # Step 4: Persist (compare-and-set, never retried)
        try:
            saved = await self._day_store.upsert(updated)
        except PersistConflictError as e:
            if self._audit_logger:
                await self._audit_logger.log_persist_conflict(
                    user_id=user_id,
                    business_date=window.business_date,
                    expected_version=e.expected_version,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_day_record_saved(
                user_id=user_id,
                business_date=saved.date,
                version=saved.version,
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_aggregation_completed(
                user_id=user_id,
                business_date=saved.date,
                total_minutes=saved.total_aligned_minutes,
                score24=saved.score24,
                current_streak=saved.current_streak,
                correlation_id=correlation_id,
            )

        return DailyMetrics.from_record(saved)

    async def calculate_today(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> DailyMetrics:
        """Aggregate the business day the engine's clock is currently in."""
        return await self.calculate_daily_metrics(
            user_id,
            self._clock(),
            correlation_id=correlation_id,
        )

    async def _load_or_start(self, user_id: str, window: DayWindow) -> GoalAlignedDay:
        existing = await self._day_store.find_one(user_id, window.business_date)
        if existing is not None:
            return existing

        previous = await self._day_store.find_latest_before(user_id, window.business_date)
        return GoalAlignedDay.start_for_day(
            user_id=user_id,
            day=window.business_date,
            target_minutes_per_day=self._settings.default_target_minutes_per_day,
            previous=previous,
        )

    async def _fetch(
        self,
        source: str,
        call: Callable[[], Awaitable[T]],
        user_id: str,
        window: DayWindow,
        correlation_id: UUID,
    ) -> T:
        try:
            return await call()
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_source_unavailable(
                    user_id=user_id,
                    business_date=window.business_date,
                    source=source,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise SourceUnavailableError(source, f"{source} source unavailable: {e}") from e


def create_app_components(
    use_storage: bool = True,
) -> tuple[GoalAlignedDayEngine, DayRecordQueries, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (engine, queries, sheets_client)
    """
    settings = get_settings()
    engine_settings = settings.engine
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            activity = GoogleSheetsActivitySource(sheets_client)
            day_store = GoogleSheetsDayRecordStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        activity = InMemoryActivityStore()
        day_store = InMemoryDayRecordStorage()
        audit_logger = AuditLogger()  # Local-only logging

    engine = GoalAlignedDayEngine(
        goal_source=activity,
        task_source=activity,
        time_block_source=activity,
        habit_source=activity,
        day_store=day_store,
        audit_logger=audit_logger,
        settings=engine_settings,
    )

    queries = DayRecordQueries(
        day_store,
        audit_logger=audit_logger,
        settings=engine_settings,
    )

    return engine, queries, sheets_client
