"""Phone number normalization to E.164."""

import re


_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw: str) -> str:
    """
    Normalize a phone number the way accounts store it.

        "(555) 123-4567"     -> "+15551234567"
        "15551234567"        -> "+15551234567"
        "+1 (555) 123-4567"  -> "+15551234567"

    Anything shorter than ten digits is returned as given (stripped).
    """
    raw = (raw or "").strip()
    digits = _NON_DIGITS.sub("", raw)

    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) > 10:
        return f"+{digits}"
    return raw
