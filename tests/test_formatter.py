"""Tests for reply formatting."""

import pytest
from datetime import date
from decimal import Decimal

from smsbudget.models.command import ParseFailureReason, TransactionKind
from smsbudget.parsing import extract_amount
from smsbudget.replies import HELP_TEXT, ReplyFormatter, ReplyKind, format_money, truncate
from smsbudget.replies.formatter import ACCOUNT_NOT_FOUND_TEXT, STORAGE_FAILURE_TEXT


class TestFormatMoney:
    """Tests for money rendering."""

    @pytest.mark.parametrize("value,expected", [
        (Decimal("25"), "$25.00"),
        (Decimal("25.5"), "$25.50"),
        (Decimal("1234.5"), "$1,234.50"),
        (Decimal("0"), "$0.00"),
        (Decimal("-5"), "-$5.00"),
    ])
    def test_format_money(self, value, expected):
        assert format_money(value) == expected

    @pytest.mark.parametrize("text", ["$25", "$25.5", "spent 7 dollars", "$1,200.99"])
    def test_extracted_amounts_render_with_two_decimals(self, text):
        rendered = format_money(extract_amount(text).amount)
        assert rendered.startswith("$")
        assert len(rendered.split(".")[1]) == 2


class TestTruncate:
    """Tests for truncate."""

    def test_short_text_untouched(self):
        assert truncate("hello", 10) == "hello"

    def test_long_text_gets_ellipsis(self):
        result = truncate("a" * 50, 20)
        assert len(result) == 20
        assert result.endswith("...")


class TestReplyFormatter:
    """Tests for ReplyFormatter."""

    def test_transaction_recorded(self):
        reply = ReplyFormatter().format(ReplyKind.TRANSACTION_RECORDED, {
            "kind": TransactionKind.EXPENSE,
            "amount": Decimal("25.00"),
            "category": "Food",
            "description": "Spent on groceries",
            "merchant": "Walmart",
        })
        assert reply == "Expense recorded: $25.00 (Food) - Spent on groceries at Walmart"

    def test_income_with_date(self):
        reply = ReplyFormatter().format(ReplyKind.TRANSACTION_RECORDED, {
            "kind": TransactionKind.INCOME,
            "amount": Decimal("500.00"),
            "category": "Income",
            "occurred_on": date(2026, 12, 15),
        })
        assert reply == "Income recorded: $500.00 (Income) on 12/15/2026"

    def test_long_description_truncated_but_amount_kept(self):
        formatter = ReplyFormatter(max_length=160)
        reply = formatter.format(ReplyKind.TRANSACTION_RECORDED, {
            "kind": TransactionKind.EXPENSE,
            "amount": Decimal("1234.50"),
            "category": "Entertainment",
            "description": "word " * 100,
        })
        assert len(reply) <= 160
        assert reply.startswith("Expense recorded: $1,234.50 (Entertainment)")
        assert reply.endswith("...")

    def test_budget_status_for_category(self):
        reply = ReplyFormatter().format(ReplyKind.BUDGET_STATUS, {
            "category": "Food",
            "month": date(2026, 10, 1),
            "allocated": Decimal("500.00"),
            "spent": Decimal("125.50"),
        })
        assert reply == (
            "Food budget (October 2026):\n"
            "Allocated: $500.00\n"
            "Spent: $125.50\n"
            "Remaining: $374.50"
        )

    def test_budget_summary_over_budget(self):
        reply = ReplyFormatter().format(ReplyKind.BUDGET_STATUS, {
            "category": None,
            "month": date(2026, 10, 1),
            "allocated": Decimal("100.00"),
            "spent": Decimal("120.00"),
        })
        assert reply.startswith("Budget summary (October 2026):")
        assert "Remaining: -$20.00 (over budget)" in reply

    def test_budget_with_nothing_set(self):
        reply = ReplyFormatter().format(ReplyKind.BUDGET_STATUS, {
            "month": date(2026, 10, 1),
            "allocated": Decimal("0"),
            "spent": Decimal("0"),
        })
        assert "No budget set for this month" in reply

    def test_help(self):
        assert ReplyFormatter().format(ReplyKind.HELP) == HELP_TEXT

    def test_help_truncated_to_limit(self):
        reply = ReplyFormatter(max_length=160).format(ReplyKind.HELP)
        assert len(reply) <= 160
        assert reply.endswith("...")

    @pytest.mark.parametrize("reason,fragment", [
        (ParseFailureReason.NO_AMOUNT_FOUND, "no dollar amount"),
        (ParseFailureReason.AMOUNT_NOT_POSITIVE, "more than $0.00"),
        (ParseFailureReason.NO_INTENT_MATCHED, "didn't understand"),
    ])
    def test_not_understood_points_at_help(self, reason, fragment):
        reply = ReplyFormatter().format(ReplyKind.NOT_UNDERSTOOD, {"reason": reason})
        assert fragment in reply
        assert '"help"' in reply

    def test_fixed_texts(self):
        formatter = ReplyFormatter()
        assert formatter.format(ReplyKind.ACCOUNT_NOT_FOUND) == ACCOUNT_NOT_FOUND_TEXT
        assert formatter.format(ReplyKind.STORAGE_FAILURE) == STORAGE_FAILURE_TEXT

    def test_verification_code(self):
        reply = ReplyFormatter().format(ReplyKind.VERIFICATION_CODE, {
            "app_name": "Budget Before Broke",
            "code": "123456",
            "ttl_minutes": 10,
        })
        assert reply == (
            "Your Budget Before Broke verification code is: 123456. "
            "This code expires in 10 minutes."
        )

    def test_format_is_idempotent(self):
        formatter = ReplyFormatter()
        data = {
            "kind": TransactionKind.EXPENSE,
            "amount": Decimal("30.00"),
            "category": "Other",
            "description": "lunch",
        }
        assert (
            formatter.format(ReplyKind.TRANSACTION_RECORDED, data)
            == formatter.format(ReplyKind.TRANSACTION_RECORDED, data)
        )
