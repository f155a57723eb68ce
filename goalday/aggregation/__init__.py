"""Goal-aligned day aggregation package."""

from goalday.aggregation.day import collect_checkins, compute_day
from goalday.aggregation.distributor import (
    CheckinKey,
    CreditDistribution,
    CreditDistributor,
)
from goalday.aggregation.scorer import (
    DayScore,
    build_goal_breakdown,
    round_half_up,
    score_day,
    score_minutes,
)
from goalday.aggregation.streak import StreakState, advance_streak

__all__ = [
    "CheckinKey",
    "CreditDistribution",
    "CreditDistributor",
    "DayScore",
    "StreakState",
    "advance_streak",
    "build_goal_breakdown",
    "collect_checkins",
    "compute_day",
    "round_half_up",
    "score_day",
    "score_minutes",
]
