"""
In-Memory Storage

Keeps transactions in a dict for the lifetime of the process.
Used by tests and by the "memory" storage backend.
"""

from typing import Optional
from uuid import UUID, uuid4

from couple_finance.models.audit import AuditEvent
from couple_finance.models.transaction import Transaction, TransactionCreate
from couple_finance.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Dict-backed transaction storage; ids are random UUIDs."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._transactions: dict[UUID, Transaction] = {}
        for transaction in transactions or []:
            if transaction.id in self._transactions:
                raise DuplicateError(f"Duplicate transaction id: {transaction.id}")
            self._transactions[transaction.id] = transaction

    async def list_transactions(self) -> list[Transaction]:
        return sorted(
            self._transactions.values(),
            key=lambda t: t.date,
            reverse=True,
        )

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        transaction = Transaction.from_create(uuid4(), data)
        self._transactions[transaction.id] = transaction
        return transaction

    async def update_transaction(self, transaction: Transaction) -> bool:
        if transaction.id not in self._transactions:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._transactions[transaction.id] = transaction
        return True

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        return self._transactions.pop(transaction_id, None) is not None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
