"""
Aggregation error taxonomy.

Storage failures live in goalday.services.storage.interface
(StorageError, PersistConflictError, ...). The errors here describe why an
aggregation request as a whole was refused or aborted. None of them carry UI
text; the route layer translates them.
"""

from typing import Any, Optional


class AggregationError(Exception):
    """Base exception for day aggregation."""
    pass


class InvalidDateError(AggregationError, ValueError):
    """Date input was missing or could not be parsed. Raised before any query."""

    def __init__(self, message: str, raw_value: Any = None):
        super().__init__(message)
        self.raw_value = raw_value


class SourceUnavailableError(AggregationError):
    """
    One of the read collaborators failed.

    The whole aggregation is aborted; a failed source is never treated as
    zero activity.
    """

    def __init__(self, source: str, message: Optional[str] = None):
        super().__init__(message or f"{source} source unavailable")
        self.source = source


class InconsistentRecordError(AggregationError):
    """A computed day record violated an invariant and was not persisted."""

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message)
        self.issues = issues or []
