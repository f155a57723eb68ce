"""
Shared fixtures.

All tests run against in-memory storage; nothing touches Google Sheets.
Reference business date is Monday 2024-03-11, whose UTC window is
2024-03-10T18:30:00Z .. 2024-03-11T18:29:59.999Z.
"""

from datetime import datetime, timezone

import pytest

from goalday.audit import AuditLogger
from goalday.config import EngineSettings
from goalday.models import Goal
from goalday.orchestrator import GoalAlignedDayEngine
from goalday.services.storage import (
    InMemoryActivityStore,
    InMemoryAuditStorage,
    InMemoryDayRecordStorage,
)

USER_ID = "user-1"
NOON_UTC = datetime(2024, 3, 11, 6, 30, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def activity():
    store = InMemoryActivityStore()
    store.add_goal(Goal(id="G1", user_id=USER_ID, name="Health", color_tag="#10B981"))
    store.add_goal(Goal(id="G2", user_id=USER_ID, name="Learning", color_tag="#6366F1"))
    return store


@pytest.fixture
def day_store():
    return InMemoryDayRecordStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def engine(activity, day_store, audit_logger, settings):
    return GoalAlignedDayEngine(
        goal_source=activity,
        task_source=activity,
        time_block_source=activity,
        habit_source=activity,
        day_store=day_store,
        audit_logger=audit_logger,
        settings=settings,
        clock=lambda: NOON_UTC,
    )
