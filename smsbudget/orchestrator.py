"""
Main Orchestrator for SMS Budget

This module ties together all the components and defines the
end-to-end flows for:
1. Inbound text (normalize -> resolve account -> parse -> dispatch -> reply)
2. Phone verification (issue code -> check code -> link phone)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Unknown phones never reach the parser
- Parsing never touches storage
- Every message gets exactly one reply, whatever fails
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import datetime
from typing import Optional, Union

import structlog

from smsbudget.audit import AuditLogger, create_correlation_id
from smsbudget.config import get_settings
from smsbudget.dispatch import CommandDispatcher
from smsbudget.models.command import (
    InboundMessage,
    RecordTransaction,
)
from smsbudget.parsing import parse
from smsbudget.phone import normalize_phone
from smsbudget.replies import ReplyFormatter, ReplyKind
from smsbudget.services.storage import (
    AccountDirectoryInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)
from smsbudget.verification import PhoneVerificationFlow


logger = structlog.get_logger("smsbudget.orchestrator")


class SmsCommandFlow:
    """
    Orchestrates one inbound text message.

    Flow:
    1. Normalize the sender phone
    2. Resolve phone -> budget account (unknown phone: fixed reply, stop)
    3. Parse the body against the account's categories
    4. Dispatch the command (at most one ledger write)
    5. Return the reply text for the transport to send

    handle_message() never raises.
    """

    def __init__(
        self,
        storage: Union[AccountDirectoryInterface, LedgerStorageInterface],
        directory: Optional[AccountDirectoryInterface] = None,
        formatter: Optional[ReplyFormatter] = None,
        dispatcher: Optional[CommandDispatcher] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._directory = directory or storage
        self._formatter = formatter or ReplyFormatter(
            get_settings().sms.max_reply_length
        )
        self._audit_logger = audit_logger
        self._dispatcher = dispatcher or CommandDispatcher(
            storage,
            formatter=self._formatter,
            audit_logger=audit_logger,
        )

    async def handle_message(
        self,
        from_phone: str,
        body: str,
        received_at: Optional[datetime] = None,
    ) -> str:
        """
        Turn one inbound text into one reply.

        Args:
            from_phone: Sender as delivered by the transport
            body: Message text
            received_at: Arrival time (defaults to now)

        Returns:
            Reply text, at most max_reply_length characters
        """
        correlation_id = create_correlation_id()

        try:
            message = InboundMessage(
                from_phone=normalize_phone(from_phone) or from_phone,
                body=body or "",
                received_at=received_at or datetime.utcnow(),
            )

            if self._audit_logger:
                await self._audit_logger.log_sms_received(
                    from_phone=message.from_phone,
                    body_length=len(message.body),
                    correlation_id=correlation_id,
                )

            try:
                account = await self._directory.resolve_account(message.from_phone)
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_storage_error(
                        operation="resolve_account",
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                return self._formatter.format(ReplyKind.STORAGE_FAILURE)

            if account is None:
                if self._audit_logger:
                    await self._audit_logger.log_account_not_found(
                        from_phone=message.from_phone,
                        correlation_id=correlation_id,
                    )
                return self._formatter.format(ReplyKind.ACCOUNT_NOT_FOUND)

            # One reference date for parsing and dispatch
            today = message.received_at.date()
            command = parse(
                message.body,
                known_categories=account.category_names,
                today=today,
            )

            if self._audit_logger:
                await self._audit_logger.log_command_parsed(
                    account_id=account.account_id,
                    command_type=command.command_type,
                    details=self._command_details(command),
                    correlation_id=correlation_id,
                )

            return await self._dispatcher.dispatch(
                command, account, correlation_id, today=today
            )

        except Exception as e:
            logger.error("sms_handling_failed", error=str(e), exc_info=True)
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return self._formatter.format(ReplyKind.STORAGE_FAILURE)

    @staticmethod
    def _command_details(command) -> dict:
        # Message text and description stay out of the audit log
        if isinstance(command, RecordTransaction):
            return {
                "kind": command.kind.value,
                "amount": str(command.amount),
                "category": command.category,
                "has_merchant": command.merchant is not None,
                "occurred_on": command.occurred_on.isoformat() if command.occurred_on else None,
            }
        return command.model_dump(mode="json", exclude={"command_type"})


def create_app_components(
    use_storage: bool = True,
) -> tuple[SmsCommandFlow, PhoneVerificationFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run against in-memory storage.

    Returns:
        (sms_flow, verification_flow, sheets_client)
    """
    settings = get_settings().sms
    formatter = ReplyFormatter(settings.max_reply_length)
    sheets_client = None
    storage = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = None

    if storage is None:
        storage = InMemoryLedgerStorage(settings.default_category_name)
        audit_logger = AuditLogger()  # Local-only logging

    sms_flow = SmsCommandFlow(
        storage,
        formatter=formatter,
        audit_logger=audit_logger,
    )

    verification_flow = PhoneVerificationFlow(
        storage,
        formatter=formatter,
        audit_logger=audit_logger,
    )

    return sms_flow, verification_flow, sheets_client
