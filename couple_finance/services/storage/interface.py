"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep the aggregation engine unaware of persistence

Storage owns identity (it assigns ids), durability and ordering of
concurrent writes. The engine only ever sees the list it returns.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from couple_finance.models.audit import AuditEvent
from couple_finance.models.transaction import Transaction, TransactionCreate


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        List every stored transaction, newest date first.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        """
        Store a new transaction and assign its id.

        Returns:
            The stored transaction, including its id

        Raises:
            StorageError: If save fails
        """
        pass

    async def create_transactions(
        self,
        items: list[TransactionCreate],
    ) -> list[Transaction]:
        """
        Store several transactions at once.

        Backends with a batch write should override this.
        """
        return [await self.create_transaction(item) for item in items]

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace an existing transaction (matched by id).

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if deleted, False if there was nothing to delete
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
