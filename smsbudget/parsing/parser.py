"""
Command Parser

Turns one raw message into exactly one ParsedCommand.

    parse("Spent $25 on groceries")
        -> RecordTransaction(kind=expense, amount=25.00, category="Food",
                             description="Spent on groceries")
    parse("budget")  -> BudgetQuery(category=None)
    parse("help")    -> HelpRequest()
    parse("asdkjh")  -> Unrecognized(reason=no_intent_matched)

GUARANTEES:
- Pure: no storage, no clock unless `today` is omitted
- Total: every input yields a command; nothing is raised
- A RecordTransaction always has amount > 0
"""

from datetime import date
from typing import Iterable, Optional

from smsbudget.models.command import (
    BudgetQuery,
    HelpRequest,
    IntentTag,
    ParsedCommand,
    ParseFailureReason,
    RecordTransaction,
    TransactionKind,
    Unrecognized,
)
from smsbudget.parsing.amount import extract_amount
from smsbudget.parsing.categories import match_category
from smsbudget.parsing.details import extract_date, extract_merchant
from smsbudget.parsing.intent import classify, find_budget_keyword


def _parse_transaction(
    text: str,
    kind: TransactionKind,
    known_categories: Optional[Iterable[str]],
    today: Optional[date],
) -> ParsedCommand:
    match = extract_amount(text)
    if match is None:
        return Unrecognized(reason=ParseFailureReason.NO_AMOUNT_FOUND)
    if match.amount <= 0:
        return Unrecognized(reason=ParseFailureReason.AMOUNT_NOT_POSITIVE)

    return RecordTransaction(
        kind=kind,
        amount=match.amount,
        category=match_category(match.remainder, known_categories),
        description=match.remainder,
        merchant=extract_merchant(text),
        occurred_on=extract_date(text, today),
    )


def _parse_budget_query(
    text: str,
    known_categories: Optional[Iterable[str]],
) -> BudgetQuery:
    keyword = find_budget_keyword(text)
    remainder = text[keyword.end():] if keyword else text
    return BudgetQuery(category=match_category(remainder, known_categories))


def parse(
    text: str,
    known_categories: Optional[Iterable[str]] = None,
    today: Optional[date] = None,
) -> ParsedCommand:
    """
    Parse an inbound message.

    Args:
        text: Raw message body
        known_categories: Category names the sender's account has, in
            priority order. Defaults to BudgetCategory.
        today: Reference date for "yesterday", "monday", etc.

    Returns:
        RecordTransaction, BudgetQuery, HelpRequest or Unrecognized
    """
    text = (text or "").strip()
    if known_categories is not None:
        known_categories = list(known_categories)

    intent = classify(text)

    if intent == IntentTag.HELP:
        return HelpRequest()

    if intent == IntentTag.BUDGET_QUERY:
        return _parse_budget_query(text, known_categories)

    if intent == IntentTag.EXPENSE:
        return _parse_transaction(text, TransactionKind.EXPENSE, known_categories, today)

    if intent == IntentTag.INCOME:
        return _parse_transaction(text, TransactionKind.INCOME, known_categories, today)

    return Unrecognized(reason=ParseFailureReason.NO_INTENT_MATCHED)
