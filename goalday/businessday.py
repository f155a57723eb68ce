"""
Business Day Conversion

DESIGN DECISION: A "day" is a calendar day at a FIXED UTC+05:30 offset.
This is a business rule, not a timezone feature: there is no DST, no
per-user zone and no tz database lookup. The window for a business date is
[00:00:00.000, 23:59:59.999] local, converted back to UTC instants for
querying. Tests depend on this being bit-for-bit reproducible.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Union

from pydantic import BaseModel, ConfigDict

from goalday.errors import InvalidDateError
from goalday.models.activity import ensure_utc


BUSINESS_DAY_OFFSET = timedelta(hours=5, minutes=30)
BUSINESS_TZ = timezone(BUSINESS_DAY_OFFSET, "IST")

_LAST_MILLISECOND = time(23, 59, 59, 999000)


class DayWindow(BaseModel):
    """The [start, end] instant range of one business date, in UTC."""
    model_config = ConfigDict(frozen=True)

    business_date: date
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_utc(instant) <= self.end


class WeekWindow(BaseModel):
    """Seven consecutive business dates, Sunday through Saturday."""
    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date

    def dates(self) -> list[date]:
        return [self.start_date + timedelta(days=i) for i in range(7)]


def parse_reference(value: Any) -> Union[date, datetime]:
    """
    Validate a caller-supplied reference date.

    Accepts a datetime (an instant; naive means UTC), a date (already a
    business date) or an ISO-8601 string of either. Anything else, including
    None, raises InvalidDateError.
    """
    if value is None:
        raise InvalidDateError("A reference date is required", raw_value=value)

    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return value

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDateError("Date string is empty", raw_value=value)
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError as e:
            raise InvalidDateError(f"Unparseable date: {value!r}", raw_value=value) from e

    raise InvalidDateError(
        f"Unsupported date type: {type(value).__name__}",
        raw_value=value,
    )


def business_date_of(instant: datetime) -> date:
    """The business date an instant falls on."""
    return (ensure_utc(instant) + BUSINESS_DAY_OFFSET).date()


def to_business_date(value: Any) -> date:
    """Resolve any accepted reference value to its business date."""
    reference = parse_reference(value)
    if isinstance(reference, datetime):
        return business_date_of(reference)
    return reference


def window_for_date(business_date: date) -> DayWindow:
    """UTC instants bounding a business date."""
    start = datetime.combine(business_date, time.min, tzinfo=timezone.utc)
    end = datetime.combine(business_date, _LAST_MILLISECOND, tzinfo=timezone.utc)
    return DayWindow(
        business_date=business_date,
        start=start - BUSINESS_DAY_OFFSET,
        end=end - BUSINESS_DAY_OFFSET,
    )


def day_window(value: Any) -> DayWindow:
    """
    Business-day window for a reference date.

    Example: 2024-03-10T20:00:00Z is 2024-03-11 01:30 local, so the window is
    2024-03-10T18:30:00Z .. 2024-03-11T18:29:59.999Z.
    """
    return window_for_date(to_business_date(value))


def week_window(value: Any) -> WeekWindow:
    """The Sunday-to-Saturday business week containing a reference date."""
    business_date = to_business_date(value)
    # date.weekday(): Monday=0 .. Sunday=6
    sunday = business_date - timedelta(days=(business_date.weekday() + 1) % 7)
    return WeekWindow(start_date=sunday, end_date=sunday + timedelta(days=6))
