"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the activity
sources and the day record store. Google Sheets is the persistent backend;
the in-memory backend serves tests and local runs.
"""

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
from goalday.services.storage.google_sheets import (
    GoogleSheetsActivitySource,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDayRecordStorage,
)
from goalday.services.storage.memory import (
    InMemoryActivityStore,
    InMemoryAuditStorage,
    InMemoryDayRecordStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DayRecordStorageInterface",
    "GoalSourceInterface",
    "HabitSourceInterface",
    "TaskSourceInterface",
    "TimeBlockSourceInterface",
    # Exceptions
    "ConnectionError",
    "MalformedRowError",
    "PersistConflictError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsActivitySource",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDayRecordStorage",
    # In-memory implementation
    "InMemoryActivityStore",
    "InMemoryAuditStorage",
    "InMemoryDayRecordStorage",
]
