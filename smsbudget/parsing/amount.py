"""
Amount Extraction

Finds the dollar amount in a free-text message.

Recognized forms:
- "$25", "$25.50", "$ 25", "$1,200.00"
- bare numbers next to a money word: "spent 25", "income 500", "40 bucks"

DESIGN DECISION: The leftmost amount-like token wins, and if that token
is malformed ("$25.999", "$25abc") we return None instead of trying the
next one. Messages with two amounts ("spent $25 and $10") therefore
always record the first. We never round or truncate what the user typed.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, Optional

from smsbudget.models.command import to_money


# Words that make a bare number read as money when directly next to it
CONTEXT_WORDS = frozenset({
    "spent", "paid", "bought", "expense", "cost",
    "income", "earned", "received",
    "budget", "balance",
    "dollar", "dollars", "bucks", "usd",
})

_DOLLAR_TOKEN = re.compile(r"\$\s?(\S*)")
_BARE_TOKEN = re.compile(r"(?<!\S)\d[\d,.]*(?=[\s!?;:)\"']|$)")
_VALID_AMOUNT = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?$")
_TRAILING_PUNCTUATION = ".,!?;:)\"'"


class AmountMatch(NamedTuple):
    """An extracted amount and the message text without it."""
    amount: Decimal
    remainder: str


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def _neighbour_word(fragment: str, last: bool) -> str:
    words = fragment.split()
    if not words:
        return ""
    word = words[-1] if last else words[0]
    return "".join(c for c in word.lower() if c.isalpha())


def _has_money_context(text: str, start: int, end: int) -> bool:
    previous = _neighbour_word(text[:start], last=True)
    following = _neighbour_word(text[end:], last=False)
    return previous in CONTEXT_WORDS or following in CONTEXT_WORDS


def _candidates(text: str) -> list[tuple[int, int, str]]:
    """All amount-like tokens as (start, end, number_text), leftmost first."""
    found = []

    for match in _DOLLAR_TOKEN.finditer(text):
        number = match.group(1).rstrip(_TRAILING_PUNCTUATION)
        end = match.start(1) + len(number)
        found.append((match.start(), end, number))

    for match in _BARE_TOKEN.finditer(text):
        number = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        end = match.start() + len(number)
        if _has_money_context(text, match.start(), end):
            found.append((match.start(), end, number))

    found.sort(key=lambda candidate: candidate[0])
    return found


def parse_money(number: str) -> Optional[Decimal]:
    """
    Convert "1,200.5" to Decimal("1200.50").

    Returns None for anything that is not an integer or a
    one/two-decimal number.
    """
    if not _VALID_AMOUNT.match(number):
        return None
    try:
        return to_money(Decimal(number.replace(",", "")))
    except InvalidOperation:
        return None


def extract_amount(text: str) -> Optional[AmountMatch]:
    """
    Extract the first dollar amount from text.

    Returns:
        AmountMatch(amount, remainder), or None when the message has no
        amount or its first amount-like token is malformed.
    """
    if not text:
        return None

    candidates = _candidates(text)
    if not candidates:
        return None

    start, end, number = candidates[0]
    amount = parse_money(number)
    if amount is None:
        return None

    remainder = collapse_whitespace(text[:start] + " " + text[end:])
    return AmountMatch(amount=amount, remainder=remainder)


def has_amount(text: str) -> bool:
    return extract_amount(text) is not None
