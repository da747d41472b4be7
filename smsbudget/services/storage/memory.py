"""
In-Memory Storage Implementation

Keeps users, categories, transactions and budgets in dictionaries.
Used by the test suite and for local development without Google
credentials. Nothing survives a restart.

Default-category creation is guarded by an asyncio.Lock, which gives the
same guarantee a unique (account, name) constraint gives a database.
"""

import asyncio
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from smsbudget.models.audit import AuditEvent
from smsbudget.models.command import (
    AccountRef,
    BudgetStatus,
    CategoryRef,
    LedgerTransaction,
    TransactionKind,
    to_money,
)
from smsbudget.services.storage.interface import (
    AccountDirectoryInterface,
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


class InMemoryLedgerStorage(
    AccountDirectoryInterface,
    LedgerStorageInterface,
    AuditStorageInterface,
):
    """
    Dictionary-backed directory, ledger and audit log.

    Args:
        default_category_name: Name of the fallback category
        fail_operations: Operation names ("insert_transaction",
            "get_budget_status", ...) that raise StorageError, for
            exercising failure paths
    """

    def __init__(
        self,
        default_category_name: str = "Other",
        fail_operations: Optional[set[str]] = None,
    ):
        self._default_category_name = default_category_name
        self.fail_operations = set(fail_operations or ())

        self.users: dict[str, dict] = {}
        self.categories: dict[str, list[CategoryRef]] = defaultdict(list)
        self.transactions: list[LedgerTransaction] = []
        self.budgets: dict[tuple[str, str, int, int], Decimal] = {}
        self.events: list[AuditEvent] = []

        self._category_lock = asyncio.Lock()

    def _check(self, operation: str) -> None:
        if operation in self.fail_operations:
            raise StorageError(f"Simulated failure in {operation}")

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_user(
        self,
        user_id: str,
        phone: Optional[str] = None,
        account_id: Optional[str] = None,
        display_name: Optional[str] = None,
        categories: tuple[str, ...] = (),
    ) -> Optional[str]:
        """Create a user, optionally with a budget account and categories."""
        self.users[user_id] = {
            "phone": phone,
            "account_id": account_id,
            "display_name": display_name,
        }
        if account_id:
            for name in categories:
                self.add_category(account_id, name)
        return account_id

    def add_category(self, account_id: str, name: str) -> CategoryRef:
        category = CategoryRef(category_id=uuid4().hex, name=name)
        self.categories[account_id].append(category)
        return category

    def set_budget(
        self,
        account_id: str,
        category_id: str,
        month: date,
        allocated: Decimal,
    ) -> None:
        key = (account_id, category_id, month.year, month.month)
        self.budgets[key] = to_money(allocated)

    # ------------------------------------------------------------------
    # AccountDirectoryInterface
    # ------------------------------------------------------------------

    async def resolve_account(self, phone: str) -> Optional[AccountRef]:
        self._check("resolve_account")
        for user_id, user in self.users.items():
            if user["phone"] == phone and user["account_id"]:
                return AccountRef(
                    account_id=user["account_id"],
                    user_id=user_id,
                    display_name=user["display_name"],
                    categories=tuple(self.categories[user["account_id"]]),
                )
        return None

    async def find_user_id_by_phone(self, phone: str) -> Optional[str]:
        self._check("find_user_id_by_phone")
        for user_id, user in self.users.items():
            if user["phone"] == phone:
                return user_id
        return None

    async def link_phone(self, user_id: str, phone: str) -> bool:
        self._check("link_phone")
        if user_id not in self.users:
            raise NotFoundError(f"User not found: {user_id}")
        owner = await self.find_user_id_by_phone(phone)
        if owner and owner != user_id:
            raise DuplicateError("Phone number already linked to another user")
        self.users[user_id]["phone"] = phone
        return True

    # ------------------------------------------------------------------
    # LedgerStorageInterface
    # ------------------------------------------------------------------

    async def find_or_create_default_category(self, account_id: str) -> CategoryRef:
        self._check("find_or_create_default_category")
        async with self._category_lock:
            wanted = self._default_category_name.lower()
            for category in self.categories[account_id]:
                if category.name.lower() == wanted:
                    return category
            # Yield while holding the lock so racing callers really queue
            await asyncio.sleep(0)
            return self.add_category(account_id, self._default_category_name)

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
        self._check("insert_transaction")
        transaction = LedgerTransaction(
            account_id=account_id,
            category_id=category_id,
            kind=kind,
            amount=amount,
            description=description,
            merchant=merchant,
            occurred_on=occurred_on,
        )
        self.transactions.append(transaction)
        return transaction.transaction_id

    async def get_budget_status(
        self,
        account_id: str,
        category_id: Optional[str],
        month: date,
    ) -> BudgetStatus:
        self._check("get_budget_status")

        allocated = sum(
            (
                amount
                for (acct, cat, year, mon), amount in self.budgets.items()
                if acct == account_id
                and (category_id is None or cat == category_id)
                and (year, mon) == (month.year, month.month)
            ),
            Decimal("0"),
        )
        spent = sum(
            (
                t.amount
                for t in self.transactions
                if t.account_id == account_id
                and t.kind == TransactionKind.EXPENSE
                and (category_id is None or t.category_id == category_id)
                and (t.occurred_on.year, t.occurred_on.month) == (month.year, month.month)
            ),
            Decimal("0"),
        )
        return BudgetStatus(allocated=to_money(allocated), spent=to_money(spent))

    # ------------------------------------------------------------------
    # AuditStorageInterface
    # ------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True
