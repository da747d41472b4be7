"""
Reply Formatting

Renders every text we send back. Replies are plain ASCII, short, and
never longer than the transport allows.

DESIGN DECISION: When a reply is too long we cut the least essential
trailing part. For a transaction confirmation that is the description
and merchant; the amount and category are always kept.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from smsbudget.models.command import ParseFailureReason, TransactionKind


DEFAULT_MAX_REPLY_LENGTH = 1000
ELLIPSIS = "..."


class ReplyKind(str, Enum):
    """Every kind of reply the interpreter produces."""
    HELP = "help"
    TRANSACTION_RECORDED = "transaction_recorded"
    BUDGET_STATUS = "budget_status"
    NOT_UNDERSTOOD = "not_understood"
    ACCOUNT_NOT_FOUND = "account_not_found"
    STORAGE_FAILURE = "storage_failure"
    VERIFICATION_CODE = "verification_code"
    PHONE_VERIFIED = "phone_verified"


HELP_TEXT = """SMS Budget Help

RECORD TRANSACTIONS:
- Spent $25 on groceries at Walmart
- Paid $50 for gas at Shell yesterday
- Income $500 freelance work 12/15
- $30 lunch

CHECK BUDGETS:
- Budget - all categories
- Budget groceries - one category
- Balance transportation

TIPS:
- Amounts are in USD, e.g. $25 or $25.50
- Add a date: yesterday, Monday, 12/15, 3 days ago
- Without a category, it goes under Other

Reply "help" anytime."""

ACCOUNT_NOT_FOUND_TEXT = (
    "Sorry, I don't recognize this phone number. "
    "Link your phone in the app under Profile > SMS to start texting your budget."
)

STORAGE_FAILURE_TEXT = (
    "Sorry, something went wrong on our end. "
    "Please try again in a minute, or send \"help\" for assistance."
)

_NOT_UNDERSTOOD_TEXT = {
    ParseFailureReason.NO_AMOUNT_FOUND: (
        "I found no dollar amount in your message. "
        "Try: Spent $25 on groceries. Send \"help\" for more examples."
    ),
    ParseFailureReason.AMOUNT_NOT_POSITIVE: (
        "The amount must be more than $0.00. "
        "Try: Spent $25 on groceries. Send \"help\" for more examples."
    ),
    ParseFailureReason.NO_INTENT_MATCHED: (
        "I didn't understand that. Send \"help\" for available commands.\n\n"
        "Quick examples:\n"
        "- Spent $25 on groceries\n"
        "- Budget groceries\n"
        "- Income $500 freelance work"
    ),
}


def format_money(value: Decimal) -> str:
    """$1,234.50 - always two decimals; negatives as -$5.00."""
    value = Decimal(value)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_month(month: date) -> str:
    return month.strftime("%B %Y")


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length, marking the cut with an ellipsis."""
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[:max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


class ReplyFormatter:
    """
    Pure templating for outbound texts.

    Usage:
        formatter = ReplyFormatter(max_length=1000)
        formatter.format(ReplyKind.HELP)
        formatter.format(ReplyKind.TRANSACTION_RECORDED, {...})
    """

    def __init__(self, max_length: int = DEFAULT_MAX_REPLY_LENGTH):
        self._max_length = max_length

    @property
    def max_length(self) -> int:
        return self._max_length

    def format(self, kind: ReplyKind, data: Optional[dict[str, Any]] = None) -> str:
        data = data or {}

        if kind == ReplyKind.TRANSACTION_RECORDED:
            return self._transaction_recorded(data)
        if kind == ReplyKind.BUDGET_STATUS:
            text = self._budget_status(data)
        elif kind == ReplyKind.HELP:
            text = HELP_TEXT
        elif kind == ReplyKind.NOT_UNDERSTOOD:
            reason = data.get("reason", ParseFailureReason.NO_INTENT_MATCHED)
            text = _NOT_UNDERSTOOD_TEXT[ParseFailureReason(reason)]
        elif kind == ReplyKind.ACCOUNT_NOT_FOUND:
            text = ACCOUNT_NOT_FOUND_TEXT
        elif kind == ReplyKind.VERIFICATION_CODE:
            text = (
                f"Your {data['app_name']} verification code is: {data['code']}. "
                f"This code expires in {data['ttl_minutes']} minutes."
            )
        elif kind == ReplyKind.PHONE_VERIFIED:
            text = (
                "Phone verified! You can now text this number to:\n\n"
                "Add transactions: \"Spent $25 on groceries\"\n"
                "Check budgets: \"Budget groceries\"\n"
                "Get help: \"help\"\n\n"
                "Welcome to SMS budgeting!"
            )
        else:
            text = STORAGE_FAILURE_TEXT

        return truncate(text, self._max_length)

    def _transaction_recorded(self, data: dict[str, Any]) -> str:
        kind = TransactionKind(data["kind"])
        label = "Expense" if kind == TransactionKind.EXPENSE else "Income"
        head = f"{label} recorded: {format_money(data['amount'])} ({data['category']})"

        tail = ""
        if data.get("description"):
            tail += f" - {data['description']}"
        if data.get("merchant"):
            tail += f" at {data['merchant']}"
        if data.get("occurred_on"):
            tail += f" on {data['occurred_on'].strftime('%m/%d/%Y')}"

        room = self._max_length - len(head)
        if room <= 0:
            return head[:self._max_length]
        return head + truncate(tail, room)

    def _budget_status(self, data: dict[str, Any]) -> str:
        allocated = Decimal(data["allocated"])
        spent = Decimal(data["spent"])
        remaining = allocated - spent
        title = (
            f"{data['category']} budget" if data.get("category")
            else "Budget summary"
        )

        lines = [
            f"{title} ({format_month(data['month'])}):",
            f"Allocated: {format_money(allocated)}",
            f"Spent: {format_money(spent)}",
            f"Remaining: {format_money(remaining)}"
            + (" (over budget)" if remaining < 0 else ""),
        ]
        if allocated == 0 and spent == 0:
            lines.append("No budget set for this month. Set one up in the app.")
        return "\n".join(lines)
