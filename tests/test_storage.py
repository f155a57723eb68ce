"""
Tests for storage backends.

The Google Sheets backends are exercised against a fake worksheet; no
network calls are made.
"""

import json
import pytest
from datetime import date, datetime, timezone

from goalday.models import (
    CheckinRecord,
    Goal,
    GoalAlignedDay,
    GoalBreakdownEntry,
    Habit,
    Task,
    TimeBlock,
    TimeBlockEntry,
)
from goalday.services.storage import (
    GoogleSheetsActivitySource,
    GoogleSheetsDayRecordStorage,
    InMemoryActivityStore,
    InMemoryDayRecordStorage,
    MalformedRowError,
    PersistConflictError,
)
from goalday.services.storage.google_sheets import (
    DAY_RECORD_COLUMNS,
    GOAL_COLUMNS,
    HABIT_COLUMNS,
    TASK_COLUMNS,
    TIME_BLOCK_COLUMNS,
)

WINDOW_START = datetime(2024, 3, 10, 18, 30, tzinfo=timezone.utc)
WINDOW_END = datetime(2024, 3, 11, 18, 29, 59, 999000, tzinfo=timezone.utc)


class FakeWorksheet:
    """Minimal in-memory stand-in for gspread.Worksheet."""

    def __init__(self, header, rows=None):
        self.rows = [list(header)] + [list(row) for row in rows or []]

    def get_all_values(self):
        return [[str(cell) for cell in row] for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def update(self, range_name=None, values=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = list(values[0])


class FakeSheetsClient:
    def __init__(self, **sheets):
        self.sheets = sheets

    def get_goals_sheet(self):
        return self.sheets["goals"]

    def get_tasks_sheet(self):
        return self.sheets["tasks"]

    def get_time_blocks_sheet(self):
        return self.sheets["time_blocks"]

    def get_habits_sheet(self):
        return self.sheets["habits"]

    def get_day_records_sheet(self):
        return self.sheets["day_records"]


def _day(day, **kwargs):
    return GoalAlignedDay(user_id="u", date=day, **kwargs)


class TestInMemoryDayRecordStorage:

    @pytest.mark.asyncio
    async def test_insert_then_update_bumps_version(self):
        store = InMemoryDayRecordStorage()
        saved = await store.upsert(_day(date(2024, 3, 11)))
        assert saved.version == 1

        again = await store.upsert(saved.model_copy(update={"task_minutes": 10}))
        assert again.version == 2
        assert (await store.find_one("u", date(2024, 3, 11))).task_minutes == 10

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self):
        store = InMemoryDayRecordStorage()
        first = await store.upsert(_day(date(2024, 3, 11)))
        await store.upsert(first)

        with pytest.raises(PersistConflictError) as exc_info:
            await store.upsert(first)
        assert exc_info.value.retryable
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    @pytest.mark.asyncio
    async def test_second_insert_conflicts(self):
        store = InMemoryDayRecordStorage()
        await store.upsert(_day(date(2024, 3, 11)))
        with pytest.raises(PersistConflictError):
            await store.upsert(_day(date(2024, 3, 11)))

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        store = InMemoryDayRecordStorage()
        saved = await store.upsert(_day(date(2024, 3, 11)))
        saved.task_minutes = 999
        assert (await store.find_one("u", date(2024, 3, 11))).task_minutes == 0

    @pytest.mark.asyncio
    async def test_latest_before_and_range(self):
        store = InMemoryDayRecordStorage()
        for day in (date(2024, 3, 5), date(2024, 3, 8), date(2024, 3, 11)):
            await store.upsert(_day(day))
        await store.upsert(GoalAlignedDay(user_id="other", date=date(2024, 3, 10)))

        assert (await store.find_latest_before("u", date(2024, 3, 11))).date == date(2024, 3, 8)
        assert await store.find_latest_before("u", date(2024, 3, 5)) is None
        assert (await store.find_latest("u")).date == date(2024, 3, 11)

        in_range = await store.find_range("u", date(2024, 3, 6), date(2024, 3, 11))
        assert [r.date for r in in_range] == [date(2024, 3, 8), date(2024, 3, 11)]

    @pytest.mark.asyncio
    async def test_list_records_newest_first_with_paging(self):
        store = InMemoryDayRecordStorage()
        for day_number in range(1, 6):
            await store.upsert(_day(date(2024, 3, day_number)))

        page = await store.list_records("u", limit=2, offset=2)
        assert [r.date.day for r in page] == [3, 2]
        assert await store.count_records("u", date_from=date(2024, 3, 2), date_to=date(2024, 3, 4)) == 3


class TestInMemoryActivityStore:

    @pytest.mark.asyncio
    async def test_filters_by_user_and_state(self):
        store = InMemoryActivityStore()
        store.add_goal(Goal(id="G1", user_id="u", name="A"))
        store.add_goal(Goal(id="G2", user_id="u", name="B", active=False))
        store.add_goal(Goal(id="G3", user_id="other", name="C"))
        assert [g.id for g in await store.list_active_goals("u")] == ["G1"]

    @pytest.mark.asyncio
    async def test_tasks_in_window(self):
        store = InMemoryActivityStore()
        store.add_task(Task(id="T1", owner_id="u", completed_at=datetime(2024, 3, 11, 6, 0)))
        store.add_task(Task(id="T2", owner_id="u", completed_at=datetime(2024, 3, 11, 19, 0)))
        store.add_task(Task(id="T3", owner_id="u"))
        tasks = await store.list_tasks_completed_in_window("u", WINDOW_START, WINDOW_END)
        assert [t.id for t in tasks] == ["T1"]

    @pytest.mark.asyncio
    async def test_time_block_entries_for_window_dates(self):
        store = InMemoryActivityStore()
        store.add_time_block(TimeBlock(user_id="u", date=date(2024, 3, 11), blocks=[
            TimeBlockEntry(date=date(2024, 3, 11), duration_minutes=30, goal_id="G1"),
        ]))
        store.add_time_block(TimeBlock(user_id="u", date=date(2024, 3, 9), blocks=[
            TimeBlockEntry(date=date(2024, 3, 9), duration_minutes=30, goal_id="G1"),
        ]))
        entries = await store.list_time_block_entries_overlapping("u", WINDOW_START, WINDOW_END)
        assert [e.date for e in entries] == [date(2024, 3, 11)]

    @pytest.mark.asyncio
    async def test_habits_need_a_goal(self):
        store = InMemoryActivityStore()
        store.add_habit(Habit(id="H1", user_id="u", name="Run", goal_id="G1"))
        store.add_habit(Habit(id="H2", user_id="u", name="Read"))
        store.add_habit(Habit(id="H3", user_id="u", name="Stretch", checkins=[
            CheckinRecord(date=datetime(2024, 3, 11, 6, 0), completed=True, goal_id="G2"),
        ]))
        assert [h.id for h in await store.list_active_habits_with_goal("u")] == ["H1", "H3"]


class TestGoogleSheetsDayRecordStorage:

    def _storage(self, rows=None):
        sheet = FakeWorksheet(DAY_RECORD_COLUMNS, rows)
        return GoogleSheetsDayRecordStorage(FakeSheetsClient(day_records=sheet)), sheet

    @pytest.mark.asyncio
    async def test_row_mapping_keeps_breakdown_and_streak(self):
        storage, sheet = self._storage()
        record = _day(
            date(2024, 3, 11),
            task_minutes=60,
            total_aligned_minutes=60,
            score24=1.0,
            score_percentage=4.2,
            current_streak=2,
            longest_streak=4,
            baseline_streak=1,
            baseline_longest_streak=4,
            goal_breakdown=[GoalBreakdownEntry(
                goal_id="G1", name="Health", color_tag="#10B981", minutes=60, percentage_of_day=100,
            )],
        )
        await storage.upsert(record)

        stored_row = sheet.rows[1]
        assert stored_row[DAY_RECORD_COLUMNS.index("version")] == 1
        assert json.loads(stored_row[-1])[0]["goal_id"] == "G1"

        loaded = await storage.find_one("u", date(2024, 3, 11))
        assert loaded.version == 1
        assert loaded.score24 == 1.0
        assert loaded.average_mindful_rating is None
        assert loaded.baseline_streak == 1
        assert loaded.goal_breakdown[0].minutes == 60

    @pytest.mark.asyncio
    async def test_update_in_place_and_conflict(self):
        storage, sheet = self._storage()
        saved = await storage.upsert(_day(date(2024, 3, 11)))
        updated = await storage.upsert(saved.model_copy(update={"habit_minutes": 15}))
        assert updated.version == 2
        assert len(sheet.rows) == 2

        with pytest.raises(PersistConflictError):
            await storage.upsert(saved)

    @pytest.mark.asyncio
    async def test_history_queries(self):
        storage, _ = self._storage()
        for day_number in (4, 8, 11):
            await storage.upsert(_day(date(2024, 3, day_number)))

        assert (await storage.find_latest_before("u", date(2024, 3, 11))).date == date(2024, 3, 8)
        assert [r.date.day for r in await storage.list_records("u", limit=2)] == [11, 8]
        assert await storage.count_records("u", date_from=date(2024, 3, 5)) == 2

    @pytest.mark.asyncio
    async def test_malformed_row_raises_and_is_never_duplicated(self):
        storage, sheet = self._storage()
        await storage.upsert(_day(date(2024, 3, 11), current_streak=3, longest_streak=3))
        sheet.rows[1][DAY_RECORD_COLUMNS.index("goal_breakdown_json")] = "{not json"

        with pytest.raises(MalformedRowError) as exc_info:
            await storage.find_one("u", date(2024, 3, 11))
        assert exc_info.value.row_number == 2
        assert exc_info.value.collection == "day_records"

        with pytest.raises(MalformedRowError):
            await storage.upsert(_day(date(2024, 3, 11)))
        assert len(sheet.rows) == 2

    @pytest.mark.asyncio
    async def test_other_users_rows_are_not_parsed(self):
        storage, _ = self._storage([["someone-else", "garbage"]])
        assert await storage.find_one("u", date(2024, 3, 11)) is None


class TestGoogleSheetsActivitySource:

    @pytest.mark.asyncio
    async def test_reads_and_normalizes_rows(self):
        client = FakeSheetsClient(
            goals=FakeWorksheet(GOAL_COLUMNS, [
                ["G1", "u", "Health", "#10B981", "60", "TRUE"],
                ["G2", "u", "Old", "", "", "FALSE"],
            ]),
            tasks=FakeWorksheet(TASK_COLUMNS, [
                ["T1", "u", "Run", "2024-03-11T06:00:00+00:00", '["G1", "G2"]', "30", "", "", "", "5"],
                ["T2", "u", "Late", "2024-03-12T06:00:00+00:00", '["G1"]', "30", "", "", "", ""],
            ]),
            time_blocks=FakeWorksheet(TIME_BLOCK_COLUMNS, [
                ["u", "2024-03-11", "09:00", "45", "G1", "T1"],
                ["u", "2024-03-01", "09:00", "45", "G1", ""],
            ]),
            habits=FakeWorksheet(HABIT_COLUMNS, [
                ["H1", "u", "Meditate", "G1", "15", "TRUE",
                 '[{"date": "2024-03-11T02:00:00Z", "completed": true}]'],
                ["H2", "u", "No goal", "", "10", "TRUE", "[]"],
            ]),
        )
        source = GoogleSheetsActivitySource(client)

        goals = await source.list_active_goals("u")
        assert [(g.id, g.color_tag) for g in goals] == [("G1", "#10B981")]

        tasks = await source.list_tasks_completed_in_window("u", WINDOW_START, WINDOW_END)
        assert [(t.id, t.goal_ids, t.mindful_rating) for t in tasks] == [("T1", ["G1", "G2"], 5)]

        entries = await source.list_time_block_entries_overlapping("u", WINDOW_START, WINDOW_END)
        assert [(e.task_id, e.duration_minutes) for e in entries] == [("T1", 45)]

        habits = await source.list_active_habits_with_goal("u")
        assert [h.id for h in habits] == ["H1"]
        assert habits[0].resolved_checkins()[0].duration_minutes == 15

    @pytest.mark.asyncio
    async def test_malformed_activity_row_raises(self):
        client = FakeSheetsClient(
            tasks=FakeWorksheet(TASK_COLUMNS, [
                ["T1", "u", "Run", "2024-03-11T06:00:00+00:00", '["G1"]', "30", "", "", "", ""],
                ["T2", "u", "Broken", "not a time", "[]", "", "", "", "", ""],
            ]),
            habits=FakeWorksheet(HABIT_COLUMNS, [
                ["H1", "u", "Meditate", "G1", "15", "TRUE", "[{broken"],
            ]),
        )
        source = GoogleSheetsActivitySource(client)

        with pytest.raises(MalformedRowError) as exc_info:
            await source.list_tasks_completed_in_window("u", WINDOW_START, WINDOW_END)
        assert exc_info.value.collection == "tasks"
        assert exc_info.value.row_number == 3

        with pytest.raises(MalformedRowError):
            await source.list_active_habits_with_goal("u")

    @pytest.mark.asyncio
    async def test_malformed_row_of_other_user_ignored(self):
        client = FakeSheetsClient(goals=FakeWorksheet(GOAL_COLUMNS, [
            ["G1", "u", "Health", "", "", "TRUE"],
            ["G9", "other", "", "", "not a number", "TRUE"],
        ]))
        goals = await GoogleSheetsActivitySource(client).list_active_goals("u")
        assert [g.id for g in goals] == ["G1"]
