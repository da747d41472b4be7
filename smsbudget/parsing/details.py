"""
Optional transaction details: when and where.

"Paid $50 for gas at Shell yesterday" carries a merchant ("Shell") and a
date ("yesterday") on top of the amount. Both are optional; a message
without them is recorded for today with no merchant.

Supported date phrases:
- today, yesterday, tomorrow
- weekday names ("monday") - the most recent such day, today included
- "3 days ago"
- 12/15, 12/15/24, 12/15/2024 (US month-first)
"""

import re
from datetime import date, timedelta
from typing import Optional


_WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
)

_FULL_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})\b")
_SHORT_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})\b(?!/)")
_RELATIVE_DAY = re.compile(r"\b(yesterday|today|tomorrow)\b", re.IGNORECASE)
_WEEKDAY = re.compile(r"\b(" + "|".join(_WEEKDAYS) + r")\b", re.IGNORECASE)
_DAYS_AGO = re.compile(r"\b(\d+)\s+days?\s+ago\b", re.IGNORECASE)

_MERCHANT = re.compile(
    r"\b(?:at|from)\s+([A-Za-z0-9][A-Za-z0-9&'\- ]*?)"
    r"(?=\s+(?:for|on|in|yesterday|today|tomorrow|\d+\s+days?\s+ago)\b"
    r"|\s+\d{1,2}/|[.,!?;]|\s*$)",
    re.IGNORECASE,
)

MAX_MERCHANT_LENGTH = 100


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def extract_date(text: str, today: Optional[date] = None) -> Optional[date]:
    """
    Find a date phrase in text.

    Returns None when the message has no date (callers use today) or
    when the date does not exist (13/45).
    """
    if not text:
        return None
    today = today or date.today()

    match = _FULL_DATE.search(text)
    if match:
        month, day, year = (int(g) for g in match.groups())
        if year < 100:
            year += 2000 if year < 50 else 1900
        return _safe_date(year, month, day)

    match = _SHORT_DATE.search(text)
    if match:
        month, day = (int(g) for g in match.groups())
        return _safe_date(today.year, month, day)

    match = _RELATIVE_DAY.search(text)
    if match:
        offset = {"yesterday": -1, "today": 0, "tomorrow": 1}[match.group(1).lower()]
        return today + timedelta(days=offset)

    match = _WEEKDAY.search(text)
    if match:
        target = _WEEKDAYS.index(match.group(1).lower())
        days_back = (today.weekday() - target) % 7
        return today - timedelta(days=days_back)

    match = _DAYS_AGO.search(text)
    if match:
        return today - timedelta(days=int(match.group(1)))

    return None


def extract_merchant(text: str) -> Optional[str]:
    """Return the merchant named with "at ..." or "from ...", if any."""
    if not text:
        return None
    match = _MERCHANT.search(text)
    if not match:
        return None
    merchant = " ".join(match.group(1).split())
    return merchant[:MAX_MERCHANT_LENGTH] or None
