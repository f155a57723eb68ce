"""Day record validation package."""

from goalday.validation.validator import DayRecordValidator

__all__ = ["DayRecordValidator"]
