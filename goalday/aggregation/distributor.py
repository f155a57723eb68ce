"""
Deduplication & Credit Distributor

This is where the three activity streams are reconciled. Order matters:

1. BLOCK PASS: goal-tagged time-block entries are credited first. A block
   that links a task claims that task's time.
2. HABIT PASS: completed, goal-tagged check-ins are credited once per
   (habit, check-in instant, completed) key.
3. TASK PASS: completed, goal-tagged tasks are credited unless a block
   already claimed them. A task's minutes are split evenly across its goals.

Per-goal minutes stay fractional here (25 min / 3 goals = 8.33 each);
rounding happens once, in the scorer.

The average mindful rating is NOT subject to block suppression: it reflects
every qualifying task record, linked or not.
"""

from collections import defaultdict
from datetime import datetime
from typing import Iterable, NamedTuple, Optional

from pydantic import BaseModel, Field

from goalday.aggregation.scorer import round_half_up
from goalday.businessday import DayWindow
from goalday.models.activity import HabitCheckin, Task, TimeBlockEntry, ensure_utc


class CheckinKey(NamedTuple):
    """Identity of a habit check-in for duplicate suppression."""
    habit_id: str
    checkin_instant: datetime
    completed: bool


class CreditDistribution(BaseModel):
    """Deduplicated minutes and per-goal credit for one day."""

    block_minutes: float = 0
    habit_minutes: float = 0
    task_minutes: float = 0
    tasks_goal_aligned_count: int = 0
    per_goal_minutes: dict[str, float] = Field(default_factory=dict)

    mindful_task_count: int = 0
    mindful_minutes: float = 0
    rating_inputs: list[int] = Field(
        default_factory=list,
        description="Rating of every qualifying task (defaults applied)"
    )

    linked_task_ids: set[str] = Field(default_factory=set)
    duplicate_checkins_skipped: int = 0

    @property
    def average_mindful_rating(self) -> Optional[float]:
        if not self.rating_inputs:
            return None
        return round_half_up(sum(self.rating_inputs) / len(self.rating_inputs), 1)


class CreditDistributor:
    """
    Merges tasks, time blocks and habit check-ins without double counting.

    Stateless between calls; safe to share.
    """

    def __init__(
        self,
        default_task_minutes: float = 25,
        default_mindful_rating: int = 3,
        mindful_rating_threshold: int = 4,
    ):
        self._default_task_minutes = default_task_minutes
        self._default_mindful_rating = default_mindful_rating
        self._mindful_threshold = mindful_rating_threshold

    def distribute(
        self,
        window: DayWindow,
        tasks: Iterable[Task],
        entries: Iterable[TimeBlockEntry],
        checkins: Iterable[HabitCheckin],
    ) -> CreditDistribution:
        """Run the block, habit and task passes for one day window."""
        result = CreditDistribution()
        per_goal: defaultdict[str, float] = defaultdict(float)

        self._block_pass(window, entries, result, per_goal)
        self._habit_pass(window, checkins, result, per_goal)
        self._task_pass(window, tasks, result, per_goal)

        result.per_goal_minutes = dict(per_goal)
        return result

    def _block_pass(
        self,
        window: DayWindow,
        entries: Iterable[TimeBlockEntry],
        result: CreditDistribution,
        per_goal: defaultdict,
    ) -> None:
        for entry in entries:
            if not entry.goal_id or entry.duration_minutes <= 0:
                continue  # legacy non-goal block
            if entry.date != window.business_date:
                continue

            result.block_minutes += entry.duration_minutes
            per_goal[entry.goal_id] += entry.duration_minutes
            if entry.task_id:
                result.linked_task_ids.add(entry.task_id)

    def _habit_pass(
        self,
        window: DayWindow,
        checkins: Iterable[HabitCheckin],
        result: CreditDistribution,
        per_goal: defaultdict,
    ) -> None:
        seen: set[CheckinKey] = set()
        for checkin in checkins:
            if not checkin.completed or not checkin.goal_id:
                continue
            if not window.contains(checkin.date):
                continue

            key = CheckinKey(
                habit_id=checkin.habit_id,
                checkin_instant=ensure_utc(checkin.date),
                completed=checkin.completed,
            )
            if key in seen:
                result.duplicate_checkins_skipped += 1
                continue
            seen.add(key)

            result.habit_minutes += checkin.duration_minutes
            per_goal[checkin.goal_id] += checkin.duration_minutes

    def _task_pass(
        self,
        window: DayWindow,
        tasks: Iterable[Task],
        result: CreditDistribution,
        per_goal: defaultdict,
    ) -> None:
        for task in tasks:
            if not task.is_goal_aligned or task.completed_at is None:
                continue
            if not window.contains(task.completed_at):
                continue

            rating = task.mindful_rating or self._default_mindful_rating
            result.rating_inputs.append(rating)

            if task.id in result.linked_task_ids:
                continue  # already credited through its time block

            duration = task.effective_duration(self._default_task_minutes)
            result.task_minutes += duration
            result.tasks_goal_aligned_count += 1

            is_mindful = (
                task.mindful_rating is not None
                and task.mindful_rating >= self._mindful_threshold
            )
            if is_mindful:
                result.mindful_task_count += 1
                result.mindful_minutes += duration

            share = duration / len(task.goal_ids)
            for goal_id in task.goal_ids:
                per_goal[goal_id] += share
