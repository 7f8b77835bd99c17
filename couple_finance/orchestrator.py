"""
Main Orchestrator for Couple Finance

This module ties together storage, validation, auditing and the
aggregation engine, and defines the end-to-end flows for:
1. Refresh (storage -> local list -> every derived view)
2. Edits (add / update / delete -> storage -> local list)
3. Bulk import (rows -> validate -> batch create)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only storage assigns ids; the local list mirrors what storage returned
- Nothing derived is cached: every input change means a full recompute
- Every write is audited, including the failed ones

The engine stays a pure function of (transactions, period, config).
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional
from uuid import UUID

import structlog

from couple_finance.analytics import PeriodFilter, compute_snapshot
from couple_finance.audit import AuditLogger, create_correlation_id
from couple_finance.categories import CategoryConfig, CategoryThreshold
from couple_finance.config import Settings, get_settings
from couple_finance.models.analytics import FinancialSnapshot
from couple_finance.models.transaction import Transaction, TransactionCreate
from couple_finance.models.validation import ImportResult
from couple_finance.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)
from couple_finance.validation import TransactionValidator


logger = structlog.get_logger(__name__)


def _newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: t.date, reverse=True)


class FinanceTracker:
    """
    Holds the couple's transaction list and recomputes every view from it.

    Flow:
    1. refresh() loads the list from storage
    2. set_period() / custom categories change the inputs
    3. snapshot() recomputes everything for the current inputs
    4. Writes go through storage first, then update the local list
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        config: Optional[CategoryConfig] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        self._storage = storage
        self._config = config or CategoryConfig.default()
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or TransactionValidator()
        self._transactions: list[Transaction] = []
        self._period: Optional[PeriodFilter] = None

    @property
    def transactions(self) -> list[Transaction]:
        """Copy of the current list, newest first."""
        return list(self._transactions)

    @property
    def period(self) -> Optional[PeriodFilter]:
        return self._period

    @property
    def config(self) -> CategoryConfig:
        return self._config

    async def refresh(self) -> list[Transaction]:
        """
        Reload the list from storage.

        On a storage failure the previous list is kept (empty on the
        first load) and the failure is audited.
        """
        try:
            fetched = await self._storage.list_transactions()
        except StorageError as e:
            logger.warning(
                "refresh_failed",
                error=str(e),
                kept_transactions=len(self._transactions),
            )
            await self._audit_logger.log_storage_fetch_failed(str(e))
            return self.transactions

        self._transactions = _newest_first(fetched)
        return self.transactions

    def set_period(self, period: Optional[PeriodFilter]) -> None:
        """Select the period the next snapshot covers; None means everything."""
        self._period = period

    def add_custom_expense_category(
        self,
        key: str,
        label: str,
        threshold: Optional[CategoryThreshold] = None,
    ) -> CategoryConfig:
        self._config = self._config.with_expense_category(key, label, threshold)
        return self._config

    def add_custom_income_category(self, key: str, label: str) -> CategoryConfig:
        self._config = self._config.with_income_category(key, label)
        return self._config

    def snapshot(self) -> FinancialSnapshot:
        """Every derived view for the current list, period and categories."""
        return compute_snapshot(self._transactions, self._period, self._config)

    async def _write_failed(
        self,
        operation: str,
        error: StorageError,
        correlation_id: Optional[UUID],
        transaction: Optional[Transaction] = None,
    ) -> None:
        context = {"transaction": transaction.to_log_dict()} if transaction is not None else {}
        logger.error("storage_write_failed", operation=operation, error=str(error), **context)
        await self._audit_logger.log_storage_write_failed(
            operation=operation,
            error_message=str(error),
            correlation_id=correlation_id,
        )

    async def add_transaction(
        self,
        data: TransactionCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Store a new transaction and add it to the local list.

        Raises:
            StorageError: If storage rejects the write (after auditing it)
        """
        try:
            transaction = await self._storage.create_transaction(data)
        except StorageError as e:
            await self._write_failed("create_transaction", e, correlation_id)
            raise

        self._transactions = _newest_first([*self._transactions, transaction])
        await self._audit_logger.log_transaction_created(transaction, correlation_id)
        return transaction

    async def add_transactions(
        self,
        items: list[TransactionCreate],
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """Store several transactions in one storage call."""
        if not items:
            return []
        try:
            created = await self._storage.create_transactions(items)
        except StorageError as e:
            await self._write_failed("create_transactions", e, correlation_id)
            raise

        self._transactions = _newest_first([*self._transactions, *created])
        for transaction in created:
            await self._audit_logger.log_transaction_created(transaction, correlation_id)
        return created

    async def update_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Replace a stored transaction (matched by id).

        Raises:
            NotFoundError: If storage doesn't know the id
            StorageError: If the write fails
        """
        try:
            await self._storage.update_transaction(transaction)
        except StorageError as e:
            await self._write_failed("update_transaction", e, correlation_id, transaction)
            raise

        self._transactions = _newest_first(
            transaction if t.id == transaction.id else t
            for t in self._transactions
        )
        await self._audit_logger.log_transaction_updated(transaction, correlation_id)
        return transaction

    async def delete_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete a transaction; returns False when there was nothing to delete."""
        try:
            deleted = await self._storage.delete_transaction(transaction_id)
        except StorageError as e:
            await self._write_failed("delete_transaction", e, correlation_id)
            raise

        if deleted:
            self._transactions = [t for t in self._transactions if t.id != transaction_id]
            await self._audit_logger.log_transaction_deleted(transaction_id, correlation_id)
        return deleted

    async def import_rows(self, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        """
        Validate candidate rows and store the accepted ones in one batch.

        Rejected rows are reported in the result, never stored.
        """
        correlation_id = create_correlation_id()
        result = self._validator.validate_rows(rows)

        logger.info(
            "import_validated",
            imported=result.imported_count,
            rejected=result.rejected_count,
            correlation_id=str(correlation_id),
        )

        await self.add_transactions(result.transactions, correlation_id)
        await self._audit_logger.log_import_completed(result, correlation_id)
        return result


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[FinanceTracker, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    The storage backend comes from FINANCE_STORAGE_BACKEND. If Google
    Sheets is selected but not configured, falls back to in-memory
    storage with a warning.

    Returns:
        (tracker, sheets_client)
    """
    settings = settings or get_settings()
    logging.basicConfig(format="%(message)s", level=settings.app.log_level)
    sheets_client = None
    storage: TransactionStorageInterface
    audit_storage: AuditStorageInterface

    if settings.storage.backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsTransactionStorage(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("google_sheets_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryTransactionStorage()
            audit_storage = InMemoryAuditStorage()
    else:
        storage = InMemoryTransactionStorage()
        audit_storage = InMemoryAuditStorage()

    tracker = FinanceTracker(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        validator=TransactionValidator(
            default_person=settings.app.default_person,
            settings=settings.app,
        ),
    )

    return tracker, sheets_client
