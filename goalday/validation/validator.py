"""
Day Record Validation

DESIGN DECISION: A computed record is checked BEFORE it is persisted.

STAGE 1 - SCHEMA VALIDATION:
- Field types and ranges, enforced by the GoalAlignedDay model itself.

STAGE 2 - SEMANTIC VALIDATION:
- Total equals the capped sum of the three streams
- Scores follow from the total
- Goal breakdown never sums past the total
- Streak bookkeeping is consistent

A record that fails stage 2 is never written: an inconsistent day record
would poison every later streak computation.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them.
"""

from goalday.aggregation.scorer import score_minutes
from goalday.models.day import (
    MINUTES_PER_DAY,
    GoalAlignedDay,
    ValidationIssue,
    ValidationResult,
)

_TOLERANCE = 1e-6


class DayRecordValidator:
    """Checks the invariants of a GoalAlignedDay."""

    def validate(self, record: GoalAlignedDay) -> ValidationResult:
        issues = []
        issues.extend(self._validate_totals(record))
        issues.extend(self._validate_breakdown(record))
        issues.extend(self._validate_streak(record))

        return ValidationResult(
            user_id=record.user_id,
            date=record.date,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def _validate_totals(self, record: GoalAlignedDay) -> list[ValidationIssue]:
        issues = []

        raw_total = record.block_minutes + record.habit_minutes + record.task_minutes
        expected_total, expected_score24, expected_percentage = score_minutes(raw_total)

        if record.total_aligned_minutes > MINUTES_PER_DAY:
            issues.append(ValidationIssue(
                field="total_aligned_minutes",
                issue_type="out_of_range",
                message=f"Total {record.total_aligned_minutes} exceeds {MINUTES_PER_DAY} minutes",
                severity="error",
            ))
        elif abs(record.total_aligned_minutes - expected_total) > _TOLERANCE:
            issues.append(ValidationIssue(
                field="total_aligned_minutes",
                issue_type="mismatch",
                message=(
                    f"Total {record.total_aligned_minutes} does not match "
                    f"capped stream sum {expected_total}"
                ),
                severity="error",
            ))

        if abs(record.score24 - expected_score24) > _TOLERANCE:
            issues.append(ValidationIssue(
                field="score24",
                issue_type="mismatch",
                message=f"score24 {record.score24} should be {expected_score24}",
                severity="error",
            ))

        if abs(record.score_percentage - expected_percentage) > _TOLERANCE:
            issues.append(ValidationIssue(
                field="score_percentage",
                issue_type="mismatch",
                message=f"score_percentage {record.score_percentage} should be {expected_percentage}",
                severity="error",
            ))

        if record.mindful_minutes > record.task_minutes + _TOLERANCE:
            issues.append(ValidationIssue(
                field="mindful_minutes",
                issue_type="out_of_range",
                message="Mindful minutes exceed credited task minutes",
                severity="error",
            ))

        if record.average_mindful_rating is None and record.tasks_goal_aligned_count > 0:
            issues.append(ValidationIssue(
                field="average_mindful_rating",
                issue_type="missing",
                message="Tasks were credited but no mindful rating was averaged",
                severity="warning",
            ))

        return issues

    def _validate_breakdown(self, record: GoalAlignedDay) -> list[ValidationIssue]:
        issues = []

        breakdown_sum = sum(entry.minutes for entry in record.goal_breakdown)
        if breakdown_sum > record.total_aligned_minutes + _TOLERANCE:
            issues.append(ValidationIssue(
                field="goal_breakdown",
                issue_type="out_of_range",
                message=(
                    f"Goal breakdown sums to {breakdown_sum} minutes, "
                    f"more than the total {record.total_aligned_minutes}"
                ),
                severity="error",
            ))

        goal_ids = [entry.goal_id for entry in record.goal_breakdown]
        if len(goal_ids) != len(set(goal_ids)):
            issues.append(ValidationIssue(
                field="goal_breakdown",
                issue_type="duplicate",
                message="A goal appears more than once in the breakdown",
                severity="error",
            ))

        return issues

    def _validate_streak(self, record: GoalAlignedDay) -> list[ValidationIssue]:
        issues = []

        if record.longest_streak < record.baseline_longest_streak:
            issues.append(ValidationIssue(
                field="longest_streak",
                issue_type="regression",
                message="Longest streak dropped below its baseline",
                severity="error",
            ))

        if record.current_streak > record.baseline_streak + 1:
            issues.append(ValidationIssue(
                field="current_streak",
                issue_type="out_of_range",
                message="Streak advanced by more than one day in a single day",
                severity="error",
            ))

        return issues
