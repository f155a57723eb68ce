"""
In-Memory Storage Implementation

Used by the test suite and for local runs without Google Sheets.
Behaves like the real backends: the day record store enforces the same
optimistic version check, guarded by an asyncio.Lock so concurrent
aggregations of the same day cannot both win.
"""

import asyncio
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from goalday.businessday import business_date_of
from goalday.models.activity import Goal, Habit, Task, TimeBlock, TimeBlockEntry
from goalday.models.audit import AuditEvent
from goalday.models.day import GoalAlignedDay
from goalday.services.storage.interface import (
    AuditStorageInterface,
    DayRecordStorageInterface,
    GoalSourceInterface,
    HabitSourceInterface,
    PersistConflictError,
    TaskSourceInterface,
    TimeBlockSourceInterface,
)


class InMemoryActivityStore(
    GoalSourceInterface,
    TaskSourceInterface,
    TimeBlockSourceInterface,
    HabitSourceInterface,
):
    """All four activity sources backed by plain lists."""

    def __init__(self):
        self._goals: list[Goal] = []
        self._tasks: list[Task] = []
        self._time_blocks: list[TimeBlock] = []
        self._habits: list[Habit] = []

    def add_goal(self, goal: Goal) -> Goal:
        self._goals.append(goal)
        return goal

    def add_task(self, task: Task) -> Task:
        self._tasks.append(task)
        return task

    def add_time_block(self, time_block: TimeBlock) -> TimeBlock:
        self._time_blocks.append(time_block)
        return time_block

    def add_habit(self, habit: Habit) -> Habit:
        self._habits.append(habit)
        return habit

    async def list_active_goals(self, user_id: str) -> list[Goal]:
        return [g for g in self._goals if g.user_id == user_id and g.active]

    async def list_tasks_completed_in_window(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Task]:
        return [
            task for task in self._tasks
            if task.owner_id == user_id
            and task.completed_at is not None
            and start <= task.completed_at <= end
        ]

    async def list_time_block_entries_overlapping(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[TimeBlockEntry]:
        first_day, last_day = business_date_of(start), business_date_of(end)
        entries = []
        for time_block in self._time_blocks:
            if time_block.user_id != user_id:
                continue
            if first_day <= time_block.date <= last_day:
                entries.extend(time_block.blocks)
        return entries

    async def list_active_habits_with_goal(self, user_id: str) -> list[Habit]:
        return [
            habit for habit in self._habits
            if habit.user_id == user_id
            and habit.active
            and (habit.goal_id or any(c.goal_id for c in habit.checkins))
        ]


class InMemoryDayRecordStorage(DayRecordStorageInterface):
    """Day records keyed by (user_id, date)."""

    def __init__(self):
        self._records: dict[tuple[str, date], GoalAlignedDay] = {}
        self._lock = asyncio.Lock()

    async def find_one(self, user_id: str, day: date) -> Optional[GoalAlignedDay]:
        record = self._records.get((user_id, day))
        return record.model_copy(deep=True) if record else None

    async def upsert(self, record: GoalAlignedDay) -> GoalAlignedDay:
        key = (record.user_id, record.date)
        async with self._lock:
            existing = self._records.get(key)
            stored_version = existing.version if existing else 0
            if stored_version != record.version:
                raise PersistConflictError(
                    user_id=record.user_id,
                    day=record.date,
                    expected_version=record.version,
                    actual_version=stored_version,
                )
            stored = record.model_copy(
                deep=True,
                update={
                    "version": stored_version + 1,
                    "created_at": existing.created_at if existing else record.created_at,
                    "updated_at": datetime.now(timezone.utc),
                },
            )
            self._records[key] = stored
        return stored.model_copy(deep=True)

    async def find_latest_before(self, user_id: str, day: date) -> Optional[GoalAlignedDay]:
        earlier = [r for r in self._user_records(user_id) if r.date < day]
        return max(earlier, key=lambda r: r.date).model_copy(deep=True) if earlier else None

    async def find_latest(self, user_id: str) -> Optional[GoalAlignedDay]:
        records = self._user_records(user_id)
        return max(records, key=lambda r: r.date).model_copy(deep=True) if records else None

    async def find_range(self, user_id: str, start: date, end: date) -> list[GoalAlignedDay]:
        matching = [r for r in self._user_records(user_id) if start <= r.date <= end]
        matching.sort(key=lambda r: r.date)
        return [r.model_copy(deep=True) for r in matching]

    async def list_records(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 30,
        offset: int = 0,
    ) -> list[GoalAlignedDay]:
        matching = self._filtered(user_id, date_from, date_to)
        matching.sort(key=lambda r: r.date, reverse=True)
        return [r.model_copy(deep=True) for r in matching[offset:offset + limit]]

    async def count_records(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        return len(self._filtered(user_id, date_from, date_to))

    def _user_records(self, user_id: str) -> list[GoalAlignedDay]:
        return [r for (owner, _), r in self._records.items() if owner == user_id]

    def _filtered(
        self,
        user_id: str,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> list[GoalAlignedDay]:
        return [
            r for r in self._user_records(user_id)
            if (date_from is None or r.date >= date_from)
            and (date_to is None or r.date <= date_to)
        ]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
