"""
Day Scorer

Pure functions turning aligned minutes into the day's scores and the
per-goal breakdown. No storage, no clock.

Rounding is half-up (2.25 -> 2.3), matching how scores have always been
displayed; Python's built-in round() would round half to even.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Union

from pydantic import BaseModel, Field

from goalday.models.activity import Goal
from goalday.models.day import MINUTES_PER_DAY, GoalBreakdownEntry


def round_half_up(value: float, digits: int = 0) -> Union[int, float]:
    """Round half away from zero to a fixed number of decimals."""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


class DayScore(BaseModel):
    """Scores for one day."""

    total_aligned_minutes: float = Field(ge=0, le=MINUTES_PER_DAY)
    score24: float = Field(ge=0, le=24)
    score_percentage: float = Field(ge=0, le=100)
    goal_breakdown: list[GoalBreakdownEntry] = Field(default_factory=list)


def score_minutes(total_minutes: float) -> tuple[float, float, float]:
    """
    Cap the day at 24 hours and express it as hours and percent.

    Returns (total_aligned_minutes, score24, score_percentage).
    """
    total = min(total_minutes, MINUTES_PER_DAY)
    score24 = min(24.0, round_half_up(total / 60, 1))
    score_percentage = round_half_up(score24 / 24 * 100, 1) if total > 0 else 0.0
    return total, score24, score_percentage


def build_goal_breakdown(
    per_goal_minutes: Mapping[str, float],
    goals: Mapping[str, Goal],
    total_aligned_minutes: float,
) -> list[GoalBreakdownEntry]:
    """
    Whole-minute breakdown per registered goal, largest first.

    Goal ids missing from the registry (deleted or inactive goals) are
    dropped. Minutes are rounded only here, once per goal. The rounded
    minutes never sum past the day's aligned total: when the day was capped
    the raw minutes are scaled down first, and any rounding overflow is taken
    back from the goals that were rounded up the most.
    """
    known = {
        goal_id: minutes
        for goal_id, minutes in per_goal_minutes.items()
        if goal_id in goals
    }
    if not known:
        return []

    raw_sum = sum(known.values())
    scale = total_aligned_minutes / raw_sum if raw_sum > total_aligned_minutes > 0 else 1.0
    scaled = {goal_id: minutes * scale for goal_id, minutes in known.items()}
    whole = {goal_id: round_half_up(minutes) for goal_id, minutes in scaled.items()}

    overflow = sum(whole.values()) - math.floor(total_aligned_minutes)
    if overflow > 0:
        rounded_up = sorted(
            (goal_id for goal_id in whole if whole[goal_id] > scaled[goal_id]),
            key=lambda goal_id: (scaled[goal_id] - whole[goal_id], goal_id),
        )
        for goal_id in rounded_up[:overflow]:
            whole[goal_id] -= 1

    breakdown = []
    for goal_id, minutes in whole.items():
        goal = goals[goal_id]
        percentage = (
            round_half_up(scaled[goal_id] / total_aligned_minutes * 100)
            if total_aligned_minutes > 0
            else 0
        )
        breakdown.append(GoalBreakdownEntry(
            goal_id=goal.id,
            name=goal.name,
            color_tag=goal.color_tag,
            minutes=max(0, minutes),
            percentage_of_day=min(100, percentage),
        ))

    breakdown.sort(key=lambda entry: (-entry.minutes, entry.goal_id))
    return breakdown


def score_day(
    block_minutes: float,
    habit_minutes: float,
    task_minutes: float,
    per_goal_minutes: Mapping[str, float],
    goals: Mapping[str, Goal],
) -> DayScore:
    """Score a day from its three deduplicated minute totals."""
    total, score24, score_percentage = score_minutes(
        block_minutes + habit_minutes + task_minutes
    )
    return DayScore(
        total_aligned_minutes=total,
        score24=score24,
        score_percentage=score_percentage,
        goal_breakdown=build_goal_breakdown(per_goal_minutes, goals, total),
    )
