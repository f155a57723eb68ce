"""
Activity Source Models for Goal-Aligned Day

These models describe the raw records the engine reads from the three
independent activity streams (tasks, time blocks, habit check-ins) plus the
goal registry used to label the output.

DESIGN DECISION: Identifier normalization happens HERE, at the adapter
boundary. Stored documents reference goals inconsistently (plain strings,
ObjectId-like values, or fully populated goal documents). Every such value is
coerced into a single GoalId string when the model is built, so the engine
never branches on runtime types.
"""

from datetime import date, datetime, timezone
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# IDENTIFIERS
# =============================================================================

def normalize_id(value: Any) -> str:
    """
    Coerce a stored reference into a plain identifier string.

    Accepts strings, UUIDs, integers, populated documents ({"_id": ...} or
    {"id": ...}) and objects exposing an ``id`` attribute.
    """
    if isinstance(value, dict):
        for key in ("_id", "id"):
            if value.get(key) is not None:
                return normalize_id(value[key])
        raise ValueError(f"Referenced document has no id: {value!r}")

    if isinstance(value, (str, UUID, int)) and not isinstance(value, bool):
        text = str(value).strip()
        if not text:
            raise ValueError("Identifier cannot be empty")
        return text

    nested = getattr(value, "id", None)
    if nested is not None:
        return normalize_id(nested)

    raise ValueError(f"Unsupported identifier value: {value!r}")


GoalId = Annotated[str, BeforeValidator(normalize_id)]
TaskId = Annotated[str, BeforeValidator(normalize_id)]


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# GOAL REGISTRY
# =============================================================================

class Goal(BaseModel):
    """
    A lifestyle goal.

    Read-only during aggregation; only used to label the goal breakdown.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: GoalId
    user_id: str
    name: str = Field(..., min_length=1, max_length=200)
    color_tag: str = Field(
        default="#3B82F6",
        max_length=20,
        description="Display color for the goal"
    )
    target_minutes_per_day: Optional[int] = Field(default=None, ge=0, le=1440)
    active: bool = True


# =============================================================================
# ACTIVITY SOURCES
# =============================================================================

class Task(BaseModel):
    """
    A task record.

    A task is goal-aligned only when it has at least one goal and was
    completed inside the day window.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: TaskId
    owner_id: str
    title: Optional[str] = Field(default=None, max_length=300)
    completed_at: Optional[datetime] = None
    goal_ids: list[GoalId] = Field(default_factory=list)

    # Duration sources, most trusted first
    duration_minutes: Optional[float] = Field(
        default=None,
        ge=0,
        description="Actual duration recorded when the task was completed"
    )
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    estimated_minutes: Optional[float] = Field(default=None, ge=0)

    mindful_rating: Optional[int] = Field(default=None, ge=1, le=5)

    @field_validator('completed_at', 'started_at', 'ended_at')
    @classmethod
    def normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @field_validator('goal_ids')
    @classmethod
    def dedupe_goal_ids(cls, v: list[str]) -> list[str]:
        """Goal tags are a set; keep first occurrence order."""
        return list(dict.fromkeys(v))

    @property
    def is_goal_aligned(self) -> bool:
        return bool(self.goal_ids)

    def effective_duration(self, default_minutes: float) -> float:
        """
        Minutes this task is worth.

        Falls back through actual duration, start/end span and estimate
        before using the default.
        """
        if self.duration_minutes:
            return self.duration_minutes
        if self.started_at and self.ended_at and self.ended_at > self.started_at:
            return round((self.ended_at - self.started_at).total_seconds() / 60)
        if self.estimated_minutes:
            return self.estimated_minutes
        return default_minutes


class TimeBlockEntry(BaseModel):
    """
    One sub-interval of a day inside a TimeBlock document.

    Legacy blocks without a goal never contribute minutes.
    """

    date: date
    start_time: Optional[str] = Field(
        default=None,
        pattern=r"^\d{1,2}:\d{2}$",
        description="Local start time (HH:MM)"
    )
    duration_minutes: float = Field(default=0, ge=0)
    goal_id: Optional[GoalId] = None
    task_id: Optional[TaskId] = None


class TimeBlock(BaseModel):
    """Per-day container of time-block entries."""

    user_id: str
    date: date
    blocks: list[TimeBlockEntry] = Field(default_factory=list)


class CheckinRecord(BaseModel):
    """A check-in as stored inside its habit document."""

    date: datetime
    completed: bool = False
    duration_minutes: Optional[float] = Field(default=None, ge=0)
    goal_id: Optional[GoalId] = None

    @field_validator('date')
    @classmethod
    def normalize_instant(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class HabitCheckin(BaseModel):
    """A habit check-in resolved against its owning habit."""

    habit_id: str
    goal_id: Optional[GoalId] = None
    date: datetime
    completed: bool
    duration_minutes: float = Field(default=0, ge=0)


class Habit(BaseModel):
    """A habit with its embedded check-ins."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    user_id: str
    name: str = Field(..., min_length=1, max_length=200)
    goal_id: Optional[GoalId] = None
    default_duration_minutes: float = Field(
        default=0,
        ge=0,
        description="Minutes credited when a check-in has no duration"
    )
    active: bool = True
    checkins: list[CheckinRecord] = Field(default_factory=list)

    def resolved_checkins(self) -> list[HabitCheckin]:
        """Check-ins carrying the habit id, goal and default duration."""
        return [
            HabitCheckin(
                habit_id=self.id,
                goal_id=record.goal_id or self.goal_id,
                date=record.date,
                completed=record.completed,
                duration_minutes=(
                    record.duration_minutes
                    if record.duration_minutes
                    else self.default_duration_minutes
                ),
            )
            for record in self.checkins
        ]
