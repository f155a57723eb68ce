"""
Pure day computation.

compute_day() takes everything the engine fetched plus the day's current
record (freshly started or previously stored) and returns the recomputed
record. It never touches storage; the orchestrator owns the read-modify-write.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from goalday.aggregation.distributor import CreditDistribution, CreditDistributor
from goalday.aggregation.scorer import score_day
from goalday.aggregation.streak import advance_streak
from goalday.businessday import DayWindow
from goalday.config import EngineSettings
from goalday.models.activity import Goal, Habit, HabitCheckin, Task, TimeBlockEntry
from goalday.models.day import GoalAlignedDay


def collect_checkins(habits: Iterable[Habit]) -> list[HabitCheckin]:
    """Flatten active habits into check-ins resolved against their habit."""
    checkins: list[HabitCheckin] = []
    for habit in habits:
        if habit.active:
            checkins.extend(habit.resolved_checkins())
    return checkins


def compute_day(
    record: GoalAlignedDay,
    window: DayWindow,
    goals: Iterable[Goal],
    tasks: Iterable[Task],
    entries: Iterable[TimeBlockEntry],
    habits: Iterable[Habit],
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> GoalAlignedDay:
    """
    Recompute a day record from raw activity.

    Same inputs and same record always give the same output, apart from
    updated_at.
    """
    settings = settings or EngineSettings()
    registry = {goal.id: goal for goal in goals if goal.active}

    distributor = CreditDistributor(
        default_task_minutes=settings.default_task_minutes,
        default_mindful_rating=settings.default_mindful_rating,
        mindful_rating_threshold=settings.mindful_rating_threshold,
    )
    credit: CreditDistribution = distributor.distribute(
        window,
        tasks=tasks,
        entries=entries,
        checkins=collect_checkins(habits),
    )

    score = score_day(
        block_minutes=credit.block_minutes,
        habit_minutes=credit.habit_minutes,
        task_minutes=credit.task_minutes,
        per_goal_minutes=credit.per_goal_minutes,
        goals=registry,
    )

    streak = advance_streak(
        baseline_current=record.baseline_streak,
        baseline_longest=record.baseline_longest_streak,
        score24=score.score24,
        target_hours=record.target_hours,
        min_meaningful_hours=settings.min_meaningful_hours,
    )

    return record.model_copy(update={
        "updated_at": now or datetime.now(timezone.utc),
        "tasks_goal_aligned_count": credit.tasks_goal_aligned_count,
        "block_minutes": credit.block_minutes,
        "habit_minutes": credit.habit_minutes,
        "task_minutes": credit.task_minutes,
        "total_aligned_minutes": score.total_aligned_minutes,
        "score24": score.score24,
        "score_percentage": score.score_percentage,
        "goal_breakdown": score.goal_breakdown,
        "mindful_task_count": credit.mindful_task_count,
        "mindful_minutes": credit.mindful_minutes,
        "average_mindful_rating": credit.average_mindful_rating,
        "current_streak": streak.current_streak,
        "longest_streak": streak.longest_streak,
    })
