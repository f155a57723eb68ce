"""Services package."""

from goalday.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DayRecordStorageInterface,
    GoalSourceInterface,
    GoogleSheetsActivitySource,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDayRecordStorage,
    HabitSourceInterface,
    InMemoryActivityStore,
    InMemoryAuditStorage,
    InMemoryDayRecordStorage,
    MalformedRowError,
    PersistConflictError,
    StorageError,
    TaskSourceInterface,
    TimeBlockSourceInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DayRecordStorageInterface",
    "GoalSourceInterface",
    "GoogleSheetsActivitySource",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDayRecordStorage",
    "HabitSourceInterface",
    "InMemoryActivityStore",
    "InMemoryAuditStorage",
    "InMemoryDayRecordStorage",
    "MalformedRowError",
    "PersistConflictError",
    "StorageError",
    "TaskSourceInterface",
    "TimeBlockSourceInterface",
]
