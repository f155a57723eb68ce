"""Day record read queries."""

from goalday.queries.executor import DayRecordQueries, QueryExecutionError

__all__ = ["DayRecordQueries", "QueryExecutionError"]
