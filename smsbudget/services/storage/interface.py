"""
Abstract Storage Interface

DESIGN DECISION: The interpreter talks to storage only through these
interfaces. This allows us to:
1. Swap Google Sheets for a relational database later
2. Use in-memory storage for testing
3. Keep parsing and dispatch free of any storage details

The interface is intentionally narrow - exactly the calls an inbound
text can trigger, plus what phone verification needs.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional

from smsbudget.models.audit import AuditEvent
from smsbudget.models.command import (
    AccountRef,
    BudgetStatus,
    CategoryRef,
    TransactionKind,
)


class AccountDirectoryInterface(ABC):
    """
    Resolves phone numbers to budget accounts.

    Phone numbers are passed already normalized to E.164.
    """

    @abstractmethod
    async def resolve_account(self, phone: str) -> Optional[AccountRef]:
        """
        Find the budget account linked to a phone number.

        Returns:
            The account with its categories, or None if no user has
            this phone (or the user has no budget account).
        """
        pass

    @abstractmethod
    async def find_user_id_by_phone(self, phone: str) -> Optional[str]:
        """Return the ID of the user this phone is linked to, if any."""
        pass

    @abstractmethod
    async def link_phone(self, user_id: str, phone: str) -> bool:
        """
        Link a verified phone number to a user.

        Raises:
            NotFoundError: If the user doesn't exist
            DuplicateError: If the phone belongs to another user
        """
        pass


class LedgerStorageInterface(ABC):
    """
    Categories, transactions and monthly budgets.

    Transactions are append-only: recording one never modifies an
    existing row.
    """

    @abstractmethod
    async def find_or_create_default_category(self, account_id: str) -> CategoryRef:
        """
        Return the account's default ("Other") category, creating it
        the first time.

        Must be idempotent under concurrency: two callers racing on a
        fresh account end up with the same single category.

        Raises:
            StorageError: If lookup or creation fails
        """
        pass

    @abstractmethod
    async def insert_transaction(
        self,
        account_id: str,
        category_id: str,
        amount: Decimal,
        kind: TransactionKind,
        description: str,
        occurred_on: date,
        merchant: Optional[str] = None,
    ) -> str:
        """
        Append one transaction row as a single atomic write.

        Returns:
            The new transaction's ID

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_budget_status(
        self,
        account_id: str,
        category_id: Optional[str],
        month: date,
    ) -> BudgetStatus:
        """
        Allocated and spent-to-date for one month.

        Args:
            account_id: Budget account
            category_id: One category, or None for all categories summed
            month: Any date in the month; only year and month are used

        Returns:
            BudgetStatus; zeros when nothing is allocated or spent

        Raises:
            StorageError: If the read fails
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


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
