"""
Data Models Package

This package contains all Pydantic models used in the SMS Budget system.
All data flowing through the interpreter must conform to these schemas.
"""

from smsbudget.models.command import (
    AccountRef,
    BudgetCategory,
    BudgetQuery,
    BudgetStatus,
    CategoryRef,
    HelpRequest,
    InboundMessage,
    IntentTag,
    LedgerTransaction,
    Money,
    ParsedCommand,
    ParseFailureReason,
    RecordTransaction,
    TransactionKind,
    Unrecognized,
    to_money,
)
from smsbudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    mask_phone,
)

__all__ = [
    # Command models
    "AccountRef",
    "BudgetCategory",
    "BudgetQuery",
    "BudgetStatus",
    "CategoryRef",
    "HelpRequest",
    "InboundMessage",
    "IntentTag",
    "LedgerTransaction",
    "Money",
    "ParsedCommand",
    "ParseFailureReason",
    "RecordTransaction",
    "TransactionKind",
    "Unrecognized",
    "to_money",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "mask_phone",
]
