"""Tests for the audit logger."""

import pytest
from datetime import date

from goalday.audit import AuditLogger, create_correlation_id
from goalday.models import AuditEventBuilder, AuditEventType, AuditSeverity
from goalday.services.storage import InMemoryAuditStorage, StorageError


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("audit sheet full")


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_events_are_persisted(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_aggregation_started("u", date(2024, 3, 11), correlation_id)
        await logger.log_persist_conflict("u", date(2024, 3, 11), 1, correlation_id)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.AGGREGATION_STARTED,
            AuditEventType.PERSIST_CONFLICT,
        ]
        assert events[1].severity == AuditSeverity.WARNING
        assert events[1].details["expected_version"] == 1

    @pytest.mark.asyncio
    async def test_local_only_logging_succeeds(self):
        logger = AuditLogger()
        event = AuditEventBuilder.system_error(error_type="test", error_message="boom")
        event_logged = await logger.log(event)
        assert event_logged is True

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        logger = AuditLogger(FailingAuditStorage())
        await logger.log_error("storage", "boom")

    @pytest.mark.asyncio
    async def test_storage_failure_reported(self):
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.query_executed(user_id="u", query_type="history", result_count=0)
        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_recent_events_respects_limit(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        await logger.log_query_executed("u", "history", 3)
        await logger.log_invalid_date("garbage", "Unparseable date", user_id="u")

        events = await storage.get_recent_events(limit=1)
        assert len(events) == 1

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()
