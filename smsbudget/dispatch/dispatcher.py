"""
Command Dispatcher

DESIGN DECISION: Dispatch is the only place a parsed command touches
storage. Parsing decides WHAT the user asked for; this module carries it
out against the ledger and turns the outcome into a reply.

GUARANTEES:
- A RecordTransaction causes exactly one insert, never retried
- A BudgetQuery only reads
- dispatch() always returns a reply; storage failures become the
  generic "something went wrong" text
"""

from datetime import date
from typing import Callable, Optional
from uuid import UUID

import structlog

from smsbudget.audit import AuditLogger
from smsbudget.models.command import (
    AccountRef,
    BudgetQuery,
    CategoryRef,
    HelpRequest,
    ParsedCommand,
    RecordTransaction,
    Unrecognized,
)
from smsbudget.replies import ReplyFormatter, ReplyKind
from smsbudget.services.storage import LedgerStorageInterface


logger = structlog.get_logger("smsbudget.dispatch")


class CommandDispatcher:
    """
    Executes parsed commands against ledger storage.

    Usage:
        dispatcher = CommandDispatcher(storage)
        reply = await dispatcher.dispatch(command, account)
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        formatter: Optional[ReplyFormatter] = None,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._storage = storage
        self._formatter = formatter or ReplyFormatter()
        self._audit_logger = audit_logger
        self._today = today or date.today

    async def dispatch(
        self,
        command: ParsedCommand,
        account: AccountRef,
        correlation_id: Optional[UUID] = None,
        today: Optional[date] = None,
    ) -> str:
        """
        Carry out one command for one account and return the reply.

        today is the reference date for undated transactions and for the
        budget month. It defaults to the injected clock.
        """
        today = today or self._today()
        try:
            if isinstance(command, RecordTransaction):
                return await self._record_transaction(
                    command, account, correlation_id, today
                )
            elif isinstance(command, BudgetQuery):
                return await self._budget_query(command, account, correlation_id, today)
            elif isinstance(command, HelpRequest):
                return self._formatter.format(ReplyKind.HELP)
            elif isinstance(command, Unrecognized):
                return self._formatter.format(
                    ReplyKind.NOT_UNDERSTOOD, {"reason": command.reason}
                )
            else:
                return self._formatter.format(ReplyKind.NOT_UNDERSTOOD)

        except Exception as e:
            logger.error(
                "dispatch_failed",
                command_type=getattr(command, "command_type", "unknown"),
                account_id=account.account_id,
                error=str(e),
                exc_info=True,
            )
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation=getattr(command, "command_type", "unknown"),
                    error_message=str(e),
                    account_id=account.account_id,
                    correlation_id=correlation_id,
                )
            return self._formatter.format(ReplyKind.STORAGE_FAILURE)

    async def _resolve_category(
        self,
        command: RecordTransaction,
        account: AccountRef,
        correlation_id: Optional[UUID],
    ) -> CategoryRef:
        category = account.find_category(command.category)
        if category:
            return category

        category = await self._storage.find_or_create_default_category(
            account.account_id
        )
        if self._audit_logger:
            await self._audit_logger.log_default_category_used(
                account_id=account.account_id,
                category_id=category.category_id,
                requested=command.category,
                correlation_id=correlation_id,
            )
        return category

    async def _record_transaction(
        self,
        command: RecordTransaction,
        account: AccountRef,
        correlation_id: Optional[UUID],
        today: date,
    ) -> str:
        category = await self._resolve_category(command, account, correlation_id)
        occurred_on = command.occurred_on or today

        transaction_id = await self._storage.insert_transaction(
            account_id=account.account_id,
            category_id=category.category_id,
            amount=command.amount,
            kind=command.kind,
            description=command.description,
            occurred_on=occurred_on,
            merchant=command.merchant,
        )

        if self._audit_logger:
            await self._audit_logger.log_transaction_recorded(
                transaction_id=transaction_id,
                account_id=account.account_id,
                kind=command.kind.value,
                amount=command.amount,
                category=category.name,
                correlation_id=correlation_id,
            )

        return self._formatter.format(
            ReplyKind.TRANSACTION_RECORDED,
            {
                "kind": command.kind,
                "amount": command.amount,
                "category": category.name,
                "description": command.description,
                "merchant": command.merchant,
                # Only worth echoing when it isn't today
                "occurred_on": occurred_on if occurred_on != today else None,
            },
        )

    async def _budget_query(
        self,
        command: BudgetQuery,
        account: AccountRef,
        correlation_id: Optional[UUID],
        today: date,
    ) -> str:
        category = account.find_category(command.category)
        month = today.replace(day=1)

        status = await self._storage.get_budget_status(
            account_id=account.account_id,
            category_id=category.category_id if category else None,
            month=month,
        )

        if self._audit_logger:
            await self._audit_logger.log_budget_queried(
                account_id=account.account_id,
                category=category.name if category else None,
                month=month.strftime("%Y-%m"),
                correlation_id=correlation_id,
            )

        return self._formatter.format(
            ReplyKind.BUDGET_STATUS,
            {
                "category": category.name if category else None,
                "month": month,
                "allocated": status.allocated,
                "spent": status.spent,
            },
        )
