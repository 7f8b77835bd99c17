"""
Integration tests for FinanceTracker.

Storage is in-memory; a failing backend is simulated by subclassing it.
"""

import asyncio
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from couple_finance.analytics import PeriodFilter
from couple_finance.audit import AuditLogger
from couple_finance.categories import CategoryThreshold
from couple_finance.config import AppSettings, Settings
from couple_finance.models.audit import AuditEventType
from couple_finance.models.transaction import Transaction, TransactionCreate
from couple_finance import orchestrator
from couple_finance.orchestrator import FinanceTracker, create_app_components
from couple_finance.services.storage import (
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
)
from couple_finance.validation import TransactionValidator


class FlakyStorage(InMemoryTransactionStorage):
    """In-memory storage whose reads and writes can be switched off."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.broken = False

    async def list_transactions(self):
        if self.broken:
            raise StorageError("network down")
        return await super().list_transactions()

    async def create_transaction(self, data):
        if self.broken:
            raise StorageError("network down")
        return await super().create_transaction(data)

    async def update_transaction(self, transaction):
        if self.broken:
            raise StorageError("network down")
        return await super().update_transaction(transaction)


def new_tx(person: str, amount: str, tx_type: str = "expense", day: str = "2024-07-10", **extra) -> TransactionCreate:
    return TransactionCreate(
        type=tx_type,
        description=f"{tx_type} {person}",
        amount=Decimal(amount),
        person=person,
        date=day,
        **extra,
    )


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def storage():
    return FlakyStorage()


@pytest.fixture
def tracker(storage, audit_storage):
    return FinanceTracker(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        validator=TransactionValidator(settings=AppSettings()),
    )


class TestRefresh:
    """Tests for loading the list from storage."""

    def test_refresh_loads_newest_first(self, storage, tracker):
        asyncio.run(storage.create_transaction(new_tx("Ana", "10", day="2024-06-01")))
        asyncio.run(storage.create_transaction(new_tx("Ana", "20", day="2024-07-01")))
        loaded = asyncio.run(tracker.refresh())
        assert [t.amount for t in loaded] == [Decimal("20"), Decimal("10")]

    def test_failed_refresh_keeps_stale_list(self, storage, tracker, audit_storage):
        asyncio.run(storage.create_transaction(new_tx("Ana", "10")))
        asyncio.run(tracker.refresh())

        storage.broken = True
        kept = asyncio.run(tracker.refresh())

        assert len(kept) == 1
        events = asyncio.run(audit_storage.get_recent_events())
        assert events[0].event_type == AuditEventType.STORAGE_FETCH_FAILED

    def test_failed_first_refresh_is_empty(self, storage, tracker):
        storage.broken = True
        assert asyncio.run(tracker.refresh()) == []
        assert tracker.snapshot().split is None


class TestEdits:
    """Tests for add/update/delete through storage."""

    def test_add_transaction_updates_snapshot(self, tracker, audit_storage):
        created = asyncio.run(tracker.add_transaction(new_tx("Ana", "5000", "income")))
        assert tracker.transactions == [created]
        assert tracker.snapshot().total_income == Decimal("5000")

        events = asyncio.run(audit_storage.get_recent_events())
        assert events[0].event_type == AuditEventType.TRANSACTION_CREATED

    def test_failed_write_is_audited_and_raised(self, storage, tracker, audit_storage):
        storage.broken = True
        with pytest.raises(StorageError):
            asyncio.run(tracker.add_transaction(new_tx("Ana", "10")))

        assert tracker.transactions == []
        events = asyncio.run(audit_storage.get_recent_events())
        assert events[0].event_type == AuditEventType.STORAGE_WRITE_FAILED

    def test_update_replaces_by_id(self, tracker):
        created = asyncio.run(tracker.add_transaction(new_tx("Ana", "10")))
        asyncio.run(tracker.update_transaction(created.replace(amount=Decimal("25"))))
        assert [t.amount for t in tracker.transactions] == [Decimal("25")]

    def test_failed_update_logs_the_record(self, storage, tracker, audit_storage, monkeypatch):
        """A failed update logs which transaction it was writing."""
        created = asyncio.run(tracker.add_transaction(new_tx("Ana", "10")))
        fake_logger = MagicMock()
        monkeypatch.setattr(orchestrator, "logger", fake_logger)

        storage.broken = True
        with pytest.raises(StorageError):
            asyncio.run(tracker.update_transaction(created.replace(amount=Decimal("25"))))

        assert [t.amount for t in tracker.transactions] == [Decimal("10")]
        events = asyncio.run(audit_storage.get_recent_events())
        assert events[0].event_type == AuditEventType.STORAGE_WRITE_FAILED

        fake_logger.error.assert_called_once()
        logged = fake_logger.error.call_args.kwargs
        assert logged["operation"] == "update_transaction"
        assert logged["transaction"]["id"] == str(created.id)
        assert Decimal(logged["transaction"]["amount"]) == Decimal("25")

    def test_update_unknown_raises(self, tracker):
        stranger = Transaction.from_create(uuid4(), new_tx("Ana", "10"))
        with pytest.raises(NotFoundError):
            asyncio.run(tracker.update_transaction(stranger))

    def test_delete(self, tracker):
        created = asyncio.run(tracker.add_transaction(new_tx("Ana", "10")))
        assert asyncio.run(tracker.delete_transaction(created.id)) is True
        assert tracker.transactions == []
        assert asyncio.run(tracker.delete_transaction(created.id)) is False


class TestInputs:
    """Tests for period and category changes."""

    def test_period_change_recomputes(self, tracker):
        asyncio.run(tracker.add_transactions([
            new_tx("Ana", "100", day="2024-06-10"),
            new_tx("Ana", "40", day="2024-07-10"),
        ]))
        assert tracker.snapshot().total_expenses == Decimal("140")

        tracker.set_period(PeriodFilter.for_month(2024, 7))
        assert tracker.snapshot().total_expenses == Decimal("40")

        tracker.set_period(None)
        assert tracker.snapshot().total_expenses == Decimal("140")

    def test_custom_category(self, tracker):
        asyncio.run(tracker.add_transactions([
            new_tx("Ana", "1000", "income"),
            new_tx("Ana", "60", category="Viagem"),
        ]))
        tracker.add_custom_expense_category(
            "Viagem", "Viagem", CategoryThreshold(medium=Decimal("5"), high=Decimal("10"))
        )
        (analysis,) = tracker.snapshot().category_analysis
        assert analysis.label == "Viagem"
        assert analysis.status.value == "medium"

    def test_custom_income_category(self, tracker):
        config = tracker.add_custom_income_category("Aluguel", "Aluguel recebido")
        assert tracker.config is config
        assert config.income_label("aluguel") == "Aluguel recebido"


class TestImport:
    """Tests for bulk import."""

    def test_import_rows(self, tracker, audit_storage):
        result = asyncio.run(tracker.import_rows([
            {"data": "05/07/2024", "descricao": "Salário", "valor": "5.000,00", "responsavel": "Ana", "tipo": "receita"},
            {"data": "06/07/2024", "descricao": "Salário", "valor": "4.500,00", "responsavel": "Bruno", "tipo": "receita"},
            {"data": "10/07/2024", "descricao": "Aluguel", "valor": "2.500,00", "responsavel": "Ana", "categoria": "Moradia"},
            {"data": "12/07/2024", "descricao": "Mercado", "valor": "1.200,00", "responsavel": "Bruno", "categoria": "Alimentação"},
            {"data": "??", "descricao": "Quebrado", "valor": "1", "responsavel": "Ana"},
        ]))

        assert result.imported_count == 4
        assert result.rejected_rows == [5]
        assert len(tracker.transactions) == 4

        settlement = tracker.snapshot().split.settlement
        assert settlement.from_person == "Bruno"
        assert abs(settlement.amount - Decimal("552.63")) < Decimal("0.01")

        event_types = {e.event_type for e in asyncio.run(audit_storage.get_recent_events())}
        assert AuditEventType.IMPORT_COMPLETED in event_types
        assert AuditEventType.IMPORT_ROWS_REJECTED in event_types

    def test_import_nothing_valid(self, tracker):
        result = asyncio.run(tracker.import_rows([{"descricao": "", "valor": "abc"}]))
        assert result.imported_count == 0
        assert tracker.transactions == []


class TestAppComponents:
    """Tests for the factory."""

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "memory")
        tracker, sheets_client = create_app_components(Settings())
        assert sheets_client is None
        assert isinstance(tracker, FinanceTracker)
        assert asyncio.run(tracker.refresh()) == []
