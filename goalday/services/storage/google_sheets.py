"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the initial storage backend because:
1. Users can view their own data directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: the day record version check narrows the race window
  between read and write but cannot close it completely
- Limited query capabilities (we filter in Python)

Reads are retried with tenacity (they have no side effects). Day record
writes are NOT retried: a silent retry could apply a streak transition twice.
"""

import json
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
import structlog
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from goalday.businessday import business_date_of
from goalday.config import get_settings
from goalday.models.activity import Goal, Habit, Task, TimeBlockEntry
from goalday.models.audit import AuditEvent, AuditEventType, AuditSeverity
from goalday.models.day import GoalAlignedDay
from goalday.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DayRecordStorageInterface,
    GoalSourceInterface,
    HabitSourceInterface,
    MalformedRowError,
    PersistConflictError,
    StorageError,
    TaskSourceInterface,
    TimeBlockSourceInterface,
)

logger = structlog.get_logger(__name__)


GOAL_COLUMNS = [
    "id",
    "user_id",
    "name",
    "color_tag",
    "target_minutes_per_day",
    "active",
]

TASK_COLUMNS = [
    "id",
    "owner_id",
    "title",
    "completed_at",
    "goal_ids_json",
    "duration_minutes",
    "started_at",
    "ended_at",
    "estimated_minutes",
    "mindful_rating",
]

# One row per time-block entry; the per-day document is (user_id, date)
TIME_BLOCK_COLUMNS = [
    "user_id",
    "date",
    "start_time",
    "duration_minutes",
    "goal_id",
    "task_id",
]

HABIT_COLUMNS = [
    "id",
    "user_id",
    "name",
    "goal_id",
    "default_duration_minutes",
    "active",
    "checkins_json",
]

DAY_RECORD_COLUMNS = [
    "user_id",
    "date",
    "version",
    "created_at",
    "updated_at",
    "tasks_goal_aligned_count",
    "block_minutes",
    "habit_minutes",
    "task_minutes",
    "total_aligned_minutes",
    "score24",
    "score_percentage",
    "mindful_task_count",
    "mindful_minutes",
    "average_mindful_rating",
    "current_streak",
    "longest_streak",
    "baseline_streak",
    "baseline_longest_streak",
    "target_minutes_per_day",
    "goal_breakdown_json",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "business_date",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

_read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type(MalformedRowError),
    reraise=True,
)


def _row_to_dict(columns: list[str], row: list) -> dict:
    """Map a sheet row onto column names; blank cells and missing columns become None."""
    values = {}
    for index, column in enumerate(columns):
        cell = row[index] if index < len(row) else ""
        values[column] = cell if cell != "" else None
    return values


def _parse_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ("true", "1", "yes")


def _malformed(collection: str, row_number: int, error: Exception) -> MalformedRowError:
    logger.warning(
        "malformed_sheet_row",
        collection=collection,
        row_number=row_number,
        error=str(error),
    )
    return MalformedRowError(collection, row_number, str(error))


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_read_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_goals_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.goals_sheet_name, GOAL_COLUMNS)

    def get_tasks_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.tasks_sheet_name, TASK_COLUMNS, rows=5000)

    def get_time_blocks_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.time_blocks_sheet_name, TIME_BLOCK_COLUMNS, rows=5000)

    def get_habits_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.habits_sheet_name, HABIT_COLUMNS)

    def get_day_records_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.day_records_sheet_name, DAY_RECORD_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsActivitySource(
    GoalSourceInterface,
    TaskSourceInterface,
    TimeBlockSourceInterface,
    HabitSourceInterface,
    MalformedRowError,
):
    """
    Read-only activity sources backed by Google Sheets.

    A failing sheet read raises StorageError so the engine can abort the
    aggregation. A row of the requested user that does not parse raises
    MalformedRowError (not retried) rather than counting as no activity.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_read_retry
    async def list_active_goals(self, user_id: str) -> list[Goal]:
        try:
            rows = self._client.get_goals_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read goals: {e}")

        goals = []
        for row_number, row in enumerate(rows, start=2):
            values = _row_to_dict(GOAL_COLUMNS, row)
            if values["user_id"] != user_id or not _parse_bool(values["active"]):
                continue
            try:
                goals.append(Goal(
                    id=values["id"],
                    user_id=values["user_id"],
                    name=values["name"],
                    color_tag=values["color_tag"] or "#3B82F6",
                    target_minutes_per_day=values["target_minutes_per_day"],
                    active=True,
                ))
            except (TypeError, ValueError) as e:
                raise _malformed("goals", row_number, e) from e
        return goals

    @_read_retry
    async def list_tasks_completed_in_window(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Task]:
        try:
            rows = self._client.get_tasks_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read tasks: {e}")

        tasks = []
        for row_number, row in enumerate(rows, start=2):
            values = _row_to_dict(TASK_COLUMNS, row)
            if values["owner_id"] != user_id or not values["completed_at"]:
                continue
            try:
                goal_ids = json.loads(values.pop("goal_ids_json") or "[]")
                task = Task(goal_ids=goal_ids, **values)
            except (TypeError, ValueError) as e:
                raise _malformed("tasks", row_number, e) from e
            if start <= task.completed_at <= end:
                tasks.append(task)
        return tasks

    @_read_retry
    async def list_time_block_entries_overlapping(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[TimeBlockEntry]:
        try:
            rows = self._client.get_time_blocks_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read time blocks: {e}")

        first_day, last_day = business_date_of(start), business_date_of(end)
        entries = []
        for row_number, row in enumerate(rows, start=2):
            values = _row_to_dict(TIME_BLOCK_COLUMNS, row)
            if values.pop("user_id") != user_id:
                continue
            try:
                entry = TimeBlockEntry(**{k: v for k, v in values.items() if v is not None})
            except (TypeError, ValueError) as e:
                raise _malformed("time_blocks", row_number, e) from e
            if first_day <= entry.date <= last_day:
                entries.append(entry)
        return entries

    @_read_retry
    async def list_active_habits_with_goal(self, user_id: str) -> list[Habit]:
        try:
            rows = self._client.get_habits_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read habits: {e}")

        habits = []
        for row_number, row in enumerate(rows, start=2):
            values = _row_to_dict(HABIT_COLUMNS, row)
            if values["user_id"] != user_id or not _parse_bool(values["active"]):
                continue
            try:
                habit = Habit(
                    id=values["id"],
                    user_id=values["user_id"],
                    name=values["name"],
                    goal_id=values["goal_id"],
                    default_duration_minutes=values["default_duration_minutes"] or 0,
                    active=True,
                    checkins=json.loads(values["checkins_json"] or "[]"),
                )
            except (TypeError, ValueError) as e:
                raise _malformed("habits", row_number, e) from e
            if habit.goal_id or any(c.goal_id for c in habit.checkins):
                habits.append(habit)
        return habits


class GoogleSheetsDayRecordStorage(DayRecordStorageInterface):
    """
    Google Sheets implementation of the day record store.

    One row per (user_id, date). The goal breakdown is JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: GoalAlignedDay) -> list:
        """Convert a GoalAlignedDay to a spreadsheet row."""
        data = record.model_dump(mode="json")
        data["goal_breakdown_json"] = json.dumps(data.pop("goal_breakdown"))
        return [
            "" if data.get(column) is None else data[column]
            for column in DAY_RECORD_COLUMNS
        ]

    def _row_to_record(self, row: list) -> GoalAlignedDay:
        """Convert a spreadsheet row to a GoalAlignedDay."""
        values = _row_to_dict(DAY_RECORD_COLUMNS, row)
        breakdown = json.loads(values.pop("goal_breakdown_json") or "[]")
        return GoalAlignedDay.model_validate({
            **{k: v for k, v in values.items() if v is not None},
            "goal_breakdown": breakdown,
        })

    @_read_retry
    def _load(self, user_id: str) -> list[tuple[int, GoalAlignedDay]]:
        """
        All of a user's records with their 1-based sheet row numbers.

        Any unparseable row of the user raises MalformedRowError. Skipping it
        would let upsert append a second row for the same date.
        """
        try:
            all_rows = self._client.get_day_records_sheet().get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to read day records: {e}")

        records = []
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if not row or row[0] != user_id:
                continue
            try:
                records.append((idx, self._row_to_record(row)))
            except (TypeError, ValueError) as e:
                raise _malformed("day_records", idx, e) from e
        return records

    async def find_one(self, user_id: str, day: date) -> Optional[GoalAlignedDay]:
        for _, record in self._load(user_id):
            if record.date == day:
                return record
        return None

    async def upsert(self, record: GoalAlignedDay) -> GoalAlignedDay:
        existing = [
            (idx, stored) for idx, stored in self._load(record.user_id)
            if stored.date == record.date
        ]
        stored_version = existing[0][1].version if existing else 0
        if stored_version != record.version:
            raise PersistConflictError(
                user_id=record.user_id,
                day=record.date,
                expected_version=record.version,
                actual_version=stored_version,
            )

        saved = record.model_copy(update={
            "version": stored_version + 1,
            "updated_at": datetime.now(timezone.utc),
        })
        row = self._record_to_row(saved)
        try:
            sheet = self._client.get_day_records_sheet()
            if existing:
                sheet.update(range_name=f"A{existing[0][0]}", values=[row])
            else:
                sheet.append_row(row, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save day record: {e}")
        return saved

    async def find_latest_before(self, user_id: str, day: date) -> Optional[GoalAlignedDay]:
        earlier = [r for _, r in self._load(user_id) if r.date < day]
        return max(earlier, key=lambda r: r.date) if earlier else None

    async def find_latest(self, user_id: str) -> Optional[GoalAlignedDay]:
        records = [r for _, r in self._load(user_id)]
        return max(records, key=lambda r: r.date) if records else None

    async def find_range(self, user_id: str, start: date, end: date) -> list[GoalAlignedDay]:
        records = [r for _, r in self._load(user_id) if start <= r.date <= end]
        records.sort(key=lambda r: r.date)
        return records

    async def list_records(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 30,
        offset: int = 0,
    ) -> list[GoalAlignedDay]:
        records = self._filtered(user_id, date_from, date_to)
        # Newest first
        records.sort(key=lambda r: r.date, reverse=True)
        return records[offset:offset + limit]

    async def count_records(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        return len(self._filtered(user_id, date_from, date_to))

    def _filtered(
        self,
        user_id: str,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> list[GoalAlignedDay]:
        return [
            r for _, r in self._load(user_id)
            if (date_from is None or r.date >= date_from)
            and (date_to is None or r.date <= date_to)
        ]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        values = _row_to_dict(AUDIT_COLUMNS, row)
        return AuditEvent(
            event_id=UUID(values["event_id"]),
            timestamp=datetime.fromisoformat(values["timestamp"]),
            event_type=AuditEventType(values["event_type"]),
            severity=AuditSeverity(values["severity"]),
            user_id=values["user_id"],
            business_date=date.fromisoformat(values["business_date"]) if values["business_date"] else None,
            correlation_id=UUID(values["correlation_id"]) if values["correlation_id"] else None,
            description=values["description"] or "",
            details=json.loads(values["details_json"]) if values["details_json"] else {},
            error_message=values["error_message"],
        )

    @_read_retry
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and len(row) > 6 and row[6] == str(correlation_id):
                try:
                    events.append(self._row_to_event(row))
                except (TypeError, ValueError) as e:
                    logger.warning("audit_row_skipped", row=row[0], error=str(e))
                    continue

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (TypeError, ValueError) as e:
                    logger.warning("audit_row_skipped", row=row[0], error=str(e))
                    continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
