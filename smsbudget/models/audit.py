"""
Audit Models for SMS Budget

Every inbound message leaves a trail: what arrived, how it was parsed,
what was written, and what went wrong. This gives us:
1. Traceability from a reply back to the ledger row it created
2. Debugging information for messages users say were misread
3. Operational follow-up on storage failures

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Phone numbers are masked before they reach an event.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Inbound message handling
    SMS_RECEIVED = "sms_received"
    ACCOUNT_NOT_FOUND = "account_not_found"
    COMMAND_PARSED = "command_parsed"

    # Ledger effects
    DEFAULT_CATEGORY_USED = "default_category_used"
    TRANSACTION_RECORDED = "transaction_recorded"
    BUDGET_QUERIED = "budget_queried"

    # Phone verification
    VERIFICATION_STARTED = "verification_started"
    VERIFICATION_FAILED = "verification_failed"
    PHONE_VERIFIED = "phone_verified"

    # Failures
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def mask_phone(phone: str) -> str:
    """Keep only the last four digits of a phone number."""
    digits = [c for c in phone if c.isdigit()]
    if len(digits) <= 4:
        return "*" * len(digits)
    return "*" * (len(digits) - 4) + "".join(digits[-4:])


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'message', 'transaction', 'account')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events for one inbound message share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered directly by a user's text?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.sms_received(phone, body_length, correlation_id)
        event = AuditEventBuilder.transaction_recorded(...)
    """

    @staticmethod
    def sms_received(
        from_phone: str,
        body_length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SMS_RECEIVED,
            entity_type="message",
            correlation_id=correlation_id,
            description="Inbound SMS received",
            details={
                "from_phone": mask_phone(from_phone),
                "body_length": body_length,
            },
            is_user_action=True,
        )

    @staticmethod
    def account_not_found(
        from_phone: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="message",
            correlation_id=correlation_id,
            description="No account linked to sender phone",
            details={
                "from_phone": mask_phone(from_phone),
            },
        )

    @staticmethod
    def command_parsed(
        account_id: str,
        command_type: str,
        details: dict,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_PARSED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Message parsed as {command_type}",
            details={"command_type": command_type, **details},
        )

    @staticmethod
    def default_category_used(
        account_id: str,
        category_id: str,
        requested: Optional[str],
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULT_CATEGORY_USED,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description="Transaction filed under the default category",
            details={
                "account_id": account_id,
                "requested_category": requested,
            },
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        account_id: str,
        kind: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} recorded: ${amount} ({category})",
            details={
                "account_id": account_id,
                "kind": kind,
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def budget_queried(
        account_id: str,
        category: Optional[str],
        month: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_QUERIED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Budget queried for {category or 'all categories'}",
            details={
                "category": category,
                "month": month,
            },
        )

    @staticmethod
    def verification_started(
        user_id: str,
        phone: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VERIFICATION_STARTED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Phone verification code issued",
            details={"phone": mask_phone(phone)},
            is_user_action=True,
        )

    @staticmethod
    def verification_failed(
        user_id: str,
        phone: str,
        outcome: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VERIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Phone verification failed: {outcome}",
            details={"phone": mask_phone(phone), "outcome": outcome},
            is_user_action=True,
        )

    @staticmethod
    def phone_verified(
        user_id: str,
        phone: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PHONE_VERIFIED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Phone number verified and linked",
            details={"phone": mask_phone(phone)},
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        account_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
