"""
Streak Tracker

Day-over-day transition of the goal-aligned streak. The transition is applied
to the baseline captured when today's record was created (the latest earlier
record), never to the value already written for today. That is what makes
recomputing the same day idempotent.
"""

from pydantic import BaseModel, Field


class StreakState(BaseModel):
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)


def advance_streak(
    baseline_current: int,
    baseline_longest: int,
    score24: float,
    target_hours: float,
    min_meaningful_hours: float = 1.0,
) -> StreakState:
    """
    Apply today's score to the baseline streak.

    - below min_meaningful_hours: the streak resets to 0
    - at or above target_hours: the streak extends by one
    - in between: partial credit, the streak holds
    The longest streak never decreases.
    """
    longest = max(baseline_longest, baseline_current)

    if score24 < min_meaningful_hours:
        return StreakState(current_streak=0, longest_streak=longest)

    if score24 >= target_hours:
        current = baseline_current + 1
        return StreakState(current_streak=current, longest_streak=max(longest, current))

    return StreakState(current_streak=baseline_current, longest_streak=longest)
