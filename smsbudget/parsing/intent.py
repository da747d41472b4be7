"""
Intent Classification

Decides what a message is for: recording an expense or income, checking
a budget, asking for help, or none of these.

DESIGN DECISION: Intent rules are an ordered table, not nested ifs.
The first rule whose predicate matches decides the intent. Help and
budget phrasing are checked before anything transactional, so
"budget $200" is a budget question and never an expense.

    INTENT_RULES = [
        IntentRule("help", _is_help, IntentTag.HELP),
        ...
    ]
"""

import re
from typing import Callable, NamedTuple, Optional

from smsbudget.models.command import IntentTag
from smsbudget.parsing.amount import has_amount


HELP_KEYWORDS = ("help", "commands")
BUDGET_KEYWORDS = ("budget", "balance")
INCOME_KEYWORDS = ("income", "received", "got paid", "earned", "deposit", "deposited")
EXPENSE_KEYWORDS = ("spent", "paid", "bought", "expense")


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(
        r"\s+".join(re.escape(part) for part in k.split()) for k in keywords
    )
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


_HELP = _keyword_pattern(HELP_KEYWORDS)
_BUDGET = _keyword_pattern(BUDGET_KEYWORDS)
_INCOME = _keyword_pattern(INCOME_KEYWORDS)
_EXPENSE = _keyword_pattern(EXPENSE_KEYWORDS)
_STANDALONE_QUESTION_MARK = re.compile(r"(?<!\S)\?(?!\S)")
_EXPENSE_FORM = re.compile(
    r"^\s*(?:spent|paid|bought|expense)\b\W*\$\s?\d", re.IGNORECASE
)


class IntentRule(NamedTuple):
    """One row of the intent table."""
    name: str
    predicate: Callable[[str], bool]
    intent: IntentTag


def _is_help(text: str) -> bool:
    return bool(_HELP.search(text) or _STANDALONE_QUESTION_MARK.search(text))


def _is_budget_query(text: str) -> bool:
    # "spent $40 on budget binders" is still an expense
    return bool(_BUDGET.search(text)) and not _EXPENSE_FORM.match(text)


def _is_income(text: str) -> bool:
    return bool(_INCOME.search(text))


def _has_expense_keyword(text: str) -> bool:
    return bool(_EXPENSE.search(text))


INTENT_RULES: list[IntentRule] = [
    IntentRule("help", _is_help, IntentTag.HELP),
    IntentRule("budget_query", _is_budget_query, IntentTag.BUDGET_QUERY),
    IntentRule("income", _is_income, IntentTag.INCOME),
    IntentRule("amount", has_amount, IntentTag.EXPENSE),
    IntentRule("expense_keyword", _has_expense_keyword, IntentTag.EXPENSE),
]


def classify(text: str, rules: list[IntentRule] = INTENT_RULES) -> IntentTag:
    """
    Classify a message.

    Rules are evaluated in order; the first match wins. A message no
    rule matches is IntentTag.UNKNOWN.
    """
    text = (text or "").strip()
    if not text:
        return IntentTag.UNKNOWN

    for rule in rules:
        if rule.predicate(text):
            return rule.intent

    return IntentTag.UNKNOWN


def find_budget_keyword(text: str) -> Optional[re.Match]:
    """Locate the first budget keyword, for extracting what follows it."""
    return _BUDGET.search(text or "")
