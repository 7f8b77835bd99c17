"""Tests for the audit logger."""

import asyncio
from decimal import Decimal
from uuid import uuid4

from couple_finance.audit import AuditLogger, create_correlation_id
from couple_finance.models.audit import AuditEventBuilder, AuditEventType
from couple_finance.models.transaction import Transaction
from couple_finance.models.validation import ImportResult, ValidationIssue
from couple_finance.services.storage import InMemoryAuditStorage, StorageError


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("sheet unavailable")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_without_storage(self):
        logger = AuditLogger()
        event = AuditEventBuilder.transaction_deleted(uuid4())
        assert asyncio.run(logger.log(event)) is True

    def test_log_persists_event(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        tx = Transaction(
            type="expense",
            description="Mercado",
            amount=Decimal("80"),
            person="Ana",
            date="2024-07-10",
        )
        asyncio.run(logger.log_transaction_created(tx))
        (event,) = asyncio.run(storage.get_recent_events())
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == tx.id

    def test_storage_failure_is_not_raised(self):
        """A broken audit backend never breaks the main flow."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.storage_fetch_failed("timeout")
        assert asyncio.run(logger.log(event)) is False

    def test_import_with_rejections_logs_two_events(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        result = ImportResult(
            issues=[ValidationIssue(
                row=2,
                field="amount",
                issue_type="invalid_value",
                message="Row 2: amount 'abc' is not a number",
                severity="error",
            )],
            rejected_rows=[2],
        )
        asyncio.run(logger.log_import_completed(result, correlation_id))

        events = asyncio.run(storage.get_recent_events())
        assert [e.event_type for e in events] == [
            AuditEventType.IMPORT_COMPLETED,
            AuditEventType.IMPORT_ROWS_REJECTED,
        ]
        assert all(e.correlation_id == correlation_id for e in events)
        assert events[1].details["rows"] == [2]
