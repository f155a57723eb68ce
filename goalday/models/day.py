"""
Day Record Models for Goal-Aligned Day

GoalAlignedDay is the persisted aggregate: one document per (user, business
date). It is created on the first aggregation request for a day and
recomputed in place on every later request for the same day. The engine never
deletes it.

The read DTOs at the bottom (DailyMetrics, StreakInfo, WeeklyDaySummary,
HistoryPage) are what callers get back. They never carry UI text.
"""

from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from goalday.models.activity import GoalId


MINUTES_PER_DAY = 1440


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PERSISTED AGGREGATE
# =============================================================================

class GoalBreakdownEntry(BaseModel):
    """Minutes credited to one active goal on one day."""

    goal_id: GoalId
    name: str
    color_tag: str
    minutes: int = Field(ge=0)
    percentage_of_day: int = Field(
        ge=0,
        le=100,
        description="Share of the day's aligned minutes, whole percent"
    )


class GoalAlignedDay(BaseModel):
    """
    The aggregated goal-aligned metrics for one user on one business date.

    Streak fields are derived from the baseline captured when the record was
    created (the latest earlier record), so recomputing a day any number of
    times yields the same streak.
    """

    # Identity
    user_id: str
    date: date
    version: int = Field(
        default=0,
        ge=0,
        description="Optimistic concurrency version, bumped on every upsert"
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    # Activity totals
    tasks_goal_aligned_count: int = Field(default=0, ge=0)
    block_minutes: float = Field(default=0, ge=0)
    habit_minutes: float = Field(default=0, ge=0)
    task_minutes: float = Field(default=0, ge=0)

    # Scores
    total_aligned_minutes: float = Field(default=0, ge=0, le=MINUTES_PER_DAY)
    score24: float = Field(default=0, ge=0, le=24)
    score_percentage: float = Field(default=0, ge=0, le=100)
    goal_breakdown: list[GoalBreakdownEntry] = Field(default_factory=list)

    # Mindfulness
    mindful_task_count: int = Field(default=0, ge=0)
    mindful_minutes: float = Field(default=0, ge=0)
    average_mindful_rating: Optional[float] = Field(
        default=None,
        ge=1,
        le=5,
        description="None when no goal-aligned task was completed that day"
    )

    # Streak
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    baseline_streak: int = Field(
        default=0,
        ge=0,
        description="current_streak of the latest earlier record at creation"
    )
    baseline_longest_streak: int = Field(default=0, ge=0)
    target_minutes_per_day: int = Field(default=480, ge=1, le=MINUTES_PER_DAY)

    @model_validator(mode='after')
    def validate_streaks(self) -> 'GoalAlignedDay':
        if self.longest_streak < self.current_streak:
            raise ValueError("Longest streak cannot be shorter than current streak")
        return self

    @property
    def target_hours(self) -> float:
        return self.target_minutes_per_day / 60

    @classmethod
    def start_for_day(
        cls,
        user_id: str,
        day: date,
        target_minutes_per_day: int,
        previous: Optional['GoalAlignedDay'] = None,
    ) -> 'GoalAlignedDay':
        """
        Create the zeroed record for a day.

        The streak baseline and daily target carry over from the latest
        earlier record when there is one.
        """
        if previous is None:
            return cls(
                user_id=user_id,
                date=day,
                target_minutes_per_day=target_minutes_per_day,
            )
        return cls(
            user_id=user_id,
            date=day,
            target_minutes_per_day=previous.target_minutes_per_day,
            current_streak=previous.current_streak,
            longest_streak=previous.longest_streak,
            baseline_streak=previous.current_streak,
            baseline_longest_streak=previous.longest_streak,
        )


# =============================================================================
# READ DTOs
# =============================================================================

class DailyMetrics(BaseModel):
    """Summary returned by one aggregation call."""

    date: date
    tasks_goal_aligned_count: int
    block_minutes: float
    habit_minutes: float
    task_minutes: float
    total_aligned_minutes: float
    score24: float
    score_percentage: float
    goal_breakdown: list[GoalBreakdownEntry]
    mindful_task_count: int
    mindful_minutes: float
    average_mindful_rating: Optional[float]
    current_streak: int
    longest_streak: int
    target_minutes_per_day: int

    @classmethod
    def from_record(cls, record: GoalAlignedDay) -> 'DailyMetrics':
        return cls(**record.model_dump(include=set(cls.model_fields)))


class StreakInfo(BaseModel):
    """Streak state from the user's most recent day record."""

    current_streak: int = 0
    longest_streak: int = 0
    target_minutes_per_day: int = 480
    last_recorded_date: Optional[date] = None


class WeeklyDaySummary(BaseModel):
    """One day in a weekly summary. Days without a record are absent."""

    date: date
    score24: float
    score_percentage: float
    total_aligned_minutes: float


class HistoryPage(BaseModel):
    """A page of day records, newest first."""

    records: list[GoalAlignedDay] = Field(default_factory=list)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=0)
    current_page: int = Field(ge=1)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single invariant violation found on a computed day record."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'out_of_range', 'mismatch')"
    )
    message: str = Field(
        ...,
        description="Description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of checking a day record before it is persisted."""

    user_id: str
    date: date
    validated_at: datetime = Field(default_factory=_utcnow)
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
