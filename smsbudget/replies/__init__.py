"""Reply formatting package."""

from smsbudget.replies.formatter import (
    HELP_TEXT,
    ReplyFormatter,
    ReplyKind,
    format_money,
    truncate,
)

__all__ = [
    "HELP_TEXT",
    "ReplyFormatter",
    "ReplyKind",
    "format_money",
    "truncate",
]
