"""Tests for the fixed-offset business day."""

import pytest
from datetime import date, datetime, timedelta, timezone

from goalday.businessday import (
    business_date_of,
    day_window,
    parse_reference,
    to_business_date,
    week_window,
)
from goalday.errors import InvalidDateError


class TestDayWindow:
    """Business day boundaries at UTC+05:30."""

    def test_evening_utc_rolls_into_next_business_day(self):
        """20:00Z is 01:30 local the next day."""
        window = day_window(datetime(2024, 3, 10, 20, 0, tzinfo=timezone.utc))
        assert window.business_date == date(2024, 3, 11)
        assert window.start == datetime(2024, 3, 10, 18, 30, tzinfo=timezone.utc)
        assert window.end == datetime(2024, 3, 11, 18, 29, 59, 999000, tzinfo=timezone.utc)

    def test_date_input_is_already_a_business_date(self):
        window = day_window(date(2024, 3, 11))
        assert window.business_date == date(2024, 3, 11)
        assert window.start == datetime(2024, 3, 10, 18, 30, tzinfo=timezone.utc)

    def test_window_spans_one_day_minus_a_millisecond(self):
        window = day_window(date(2024, 3, 11))
        assert window.end - window.start == timedelta(days=1) - timedelta(milliseconds=1)

    def test_contains_is_inclusive(self):
        window = day_window(date(2024, 3, 11))
        assert window.contains(window.start)
        assert window.contains(window.end)
        assert not window.contains(window.end + timedelta(milliseconds=1))
        assert not window.contains(window.start - timedelta(microseconds=1))

    def test_contains_treats_naive_as_utc(self):
        window = day_window(date(2024, 3, 11))
        assert window.contains(datetime(2024, 3, 10, 18, 30))

    def test_business_date_of_boundary(self):
        assert business_date_of(datetime(2024, 3, 10, 18, 29, 59, tzinfo=timezone.utc)) == date(2024, 3, 10)
        assert business_date_of(datetime(2024, 3, 10, 18, 30, tzinfo=timezone.utc)) == date(2024, 3, 11)

    def test_iso_strings(self):
        assert to_business_date("2024-03-11") == date(2024, 3, 11)
        assert to_business_date("2024-03-10T20:00:00Z") == date(2024, 3, 11)
        assert to_business_date("2024-03-11T01:30:00+05:30") == date(2024, 3, 11)


class TestInvalidDates:
    """Bad input is rejected before anything else happens."""

    @pytest.mark.parametrize("value", [None, "", "   ", "yesterday", "2024-13-40", 12345, [2024, 3, 11]])
    def test_rejected(self, value):
        with pytest.raises(InvalidDateError) as exc_info:
            parse_reference(value)
        assert exc_info.value.raw_value == value

    def test_invalid_date_is_a_value_error(self):
        with pytest.raises(ValueError):
            day_window("not a date")


class TestWeekWindow:
    """Weeks start on the local Sunday."""

    def test_monday_belongs_to_previous_sunday(self):
        week = week_window(date(2024, 3, 11))
        assert week.start_date == date(2024, 3, 10)
        assert week.end_date == date(2024, 3, 16)

    def test_sunday_starts_its_own_week(self):
        week = week_window(date(2024, 3, 10))
        assert week.start_date == date(2024, 3, 10)

    def test_saturday_local_late_evening(self):
        """Saturday 23:00 local is still Saturday even though UTC says so too."""
        week = week_window(datetime(2024, 3, 16, 17, 30, tzinfo=timezone.utc))
        assert week.end_date == date(2024, 3, 16)

    def test_sunday_local_just_after_midnight(self):
        """18:45Z Saturday is 00:15 local Sunday, a new week."""
        week = week_window(datetime(2024, 3, 16, 18, 45, tzinfo=timezone.utc))
        assert week.start_date == date(2024, 3, 17)

    def test_dates_lists_seven_days(self):
        dates = week_window(date(2024, 3, 13)).dates()
        assert len(dates) == 7
        assert dates[0] == date(2024, 3, 10)
        assert dates[-1] == date(2024, 3, 16)
