"""
Audit Logger

DESIGN DECISION: Every inbound message leaves an audit trail.
This provides:
1. A way to trace a reply back to the row it wrote
2. Debugging capability when a user says a text was misread
3. Follow-up on storage failures

The audit logger:
- Is async so it fits the message pipeline
- Gracefully handles failures (a broken audit sheet never blocks a reply)
- Supports correlation IDs to tie one message's events together
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from smsbudget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from smsbudget.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store such as the AuditLog sheet (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("smsbudget.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_sms_received(
        self,
        from_phone: str,
        body_length: int,
        correlation_id: UUID,
    ) -> None:
        """Log an inbound message (the body itself is not stored)."""
        await self.log(AuditEventBuilder.sms_received(
            from_phone=from_phone,
            body_length=body_length,
            correlation_id=correlation_id,
        ))

    async def log_account_not_found(
        self,
        from_phone: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.account_not_found(
            from_phone=from_phone,
            correlation_id=correlation_id,
        ))

    async def log_command_parsed(
        self,
        account_id: str,
        command_type: str,
        details: dict,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.command_parsed(
            account_id=account_id,
            command_type=command_type,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_default_category_used(
        self,
        account_id: str,
        category_id: str,
        requested: Optional[str],
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.default_category_used(
            account_id=account_id,
            category_id=category_id,
            requested=requested,
            correlation_id=correlation_id,
        ))

    async def log_transaction_recorded(
        self,
        transaction_id: str,
        account_id: str,
        kind: str,
        amount: Decimal,
        category: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log a ledger write."""
        await self.log(AuditEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            account_id=account_id,
            kind=kind,
            amount=str(amount),
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_budget_queried(
        self,
        account_id: str,
        category: Optional[str],
        month: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.budget_queried(
            account_id=account_id,
            category=category,
            month=month,
            correlation_id=correlation_id,
        ))

    async def log_verification_started(self, user_id: str, phone: str) -> None:
        await self.log(AuditEventBuilder.verification_started(
            user_id=user_id,
            phone=phone,
        ))

    async def log_verification_failed(
        self,
        user_id: str,
        phone: str,
        outcome: str,
    ) -> None:
        await self.log(AuditEventBuilder.verification_failed(
            user_id=user_id,
            phone=phone,
            outcome=outcome,
        ))

    async def log_phone_verified(self, user_id: str, phone: str) -> None:
        await self.log(AuditEventBuilder.phone_verified(
            user_id=user_id,
            phone=phone,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        account_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed storage call."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this when a message arrives and pass it through every
    subsequent step for that message.
    """
    return uuid4()
