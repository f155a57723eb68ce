"""Tests for day record read queries."""

import pytest
from datetime import date

from goalday.errors import InvalidDateError
from goalday.models import AuditEventType, GoalAlignedDay
from goalday.queries import DayRecordQueries, QueryExecutionError
from goalday.services.storage import InMemoryDayRecordStorage, StorageError


class BrokenDayRecordStorage(InMemoryDayRecordStorage):
    async def find_latest(self, user_id):
        raise StorageError("sheet unavailable")


async def _store_with(*records):
    store = InMemoryDayRecordStorage()
    for record in records:
        await store.upsert(record)
    return store


def _day(day, minutes=0, **kwargs):
    return GoalAlignedDay(
        user_id="u",
        date=day,
        task_minutes=minutes,
        total_aligned_minutes=minutes,
        score24=round(minutes / 60, 1),
        **kwargs,
    )


class TestWeeklySummary:

    @pytest.mark.asyncio
    async def test_only_days_with_records(self):
        store = await _store_with(
            _day(date(2024, 3, 9), 600),    # previous week
            _day(date(2024, 3, 10), 120),   # Sunday
            _day(date(2024, 3, 13), 60),
            _day(date(2024, 3, 17), 60),    # next week
        )
        summary = await DayRecordQueries(store).weekly_summary("u", date(2024, 3, 11))

        assert [entry.date for entry in summary] == [date(2024, 3, 10), date(2024, 3, 13)]
        assert summary[0].total_aligned_minutes == 120
        assert summary[0].score24 == 2.0

    @pytest.mark.asyncio
    async def test_empty_week(self):
        store = await _store_with()
        assert await DayRecordQueries(store).weekly_summary("u", "2024-03-11") == []

    @pytest.mark.asyncio
    async def test_invalid_reference(self):
        store = await _store_with()
        with pytest.raises(InvalidDateError):
            await DayRecordQueries(store).weekly_summary("u", None)


class TestStreakInfo:

    @pytest.mark.asyncio
    async def test_latest_record(self):
        store = await _store_with(
            _day(date(2024, 3, 8), current_streak=1, longest_streak=4),
            _day(date(2024, 3, 11), current_streak=2, longest_streak=4, target_minutes_per_day=300),
        )
        info = await DayRecordQueries(store).streak_info("u")

        assert info.current_streak == 2
        assert info.longest_streak == 4
        assert info.target_minutes_per_day == 300
        assert info.last_recorded_date == date(2024, 3, 11)

    @pytest.mark.asyncio
    async def test_no_records(self):
        store = await _store_with()
        info = await DayRecordQueries(store).streak_info("u")

        assert info.current_streak == 0
        assert info.longest_streak == 0
        assert info.target_minutes_per_day == 480
        assert info.last_recorded_date is None

    @pytest.mark.asyncio
    async def test_storage_failure(self):
        with pytest.raises(QueryExecutionError):
            await DayRecordQueries(BrokenDayRecordStorage()).streak_info("u")


class TestHistory:

    @pytest.mark.asyncio
    async def test_paginates_newest_first(self):
        store = await _store_with(*[_day(date(2024, 3, n)) for n in range(1, 8)])
        queries = DayRecordQueries(store)

        page = await queries.history("u", page=2, limit=3)

        assert [r.date.day for r in page.records] == [4, 3, 2]
        assert page.total == 7
        assert page.total_pages == 3
        assert page.current_page == 2

    @pytest.mark.asyncio
    async def test_date_bounds(self):
        store = await _store_with(*[_day(date(2024, 3, n)) for n in range(1, 8)])
        page = await DayRecordQueries(store).history("u", start="2024-03-03", end=date(2024, 3, 5))

        assert [r.date.day for r in page.records] == [5, 4, 3]
        assert page.total == 3
        assert page.total_pages == 1

    @pytest.mark.asyncio
    async def test_page_below_one_is_first_page(self):
        store = await _store_with(_day(date(2024, 3, 1)))
        page = await DayRecordQueries(store).history("u", page=0)
        assert page.current_page == 1
        assert len(page.records) == 1

    @pytest.mark.asyncio
    async def test_no_records(self):
        store = await _store_with()
        page = await DayRecordQueries(store).history("u")
        assert page.records == []
        assert page.total == 0
        assert page.total_pages == 0


class TestQueryAudit:

    @pytest.mark.asyncio
    async def test_queries_are_audited(self, audit_logger, audit_storage):
        store = await _store_with(_day(date(2024, 3, 11)))
        queries = DayRecordQueries(store, audit_logger=audit_logger)

        await queries.streak_info("u")
        await queries.history("u")

        events = await audit_storage.get_recent_events()
        assert {e.event_type for e in events} == {AuditEventType.QUERY_EXECUTED}
        assert sorted(e.details["query_type"] for e in events) == ["history", "streak_info"]

    @pytest.mark.asyncio
    async def test_failed_query_audited_as_error(self, audit_logger, audit_storage):
        queries = DayRecordQueries(BrokenDayRecordStorage(), audit_logger=audit_logger)

        with pytest.raises(QueryExecutionError):
            await queries.streak_info("u")

        events = await audit_storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.SYSTEM_ERROR]
        assert events[0].details == {"user_id": "u", "query_type": "streak_info"}
        assert "sheet unavailable" in events[0].error_message
