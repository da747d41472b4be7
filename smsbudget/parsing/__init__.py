"""Message parsing package."""

from smsbudget.parsing.amount import AmountMatch, extract_amount
from smsbudget.parsing.categories import (
    CATEGORY_SYNONYMS,
    DEFAULT_CATEGORIES,
    match_category,
    normalize_text,
)
from smsbudget.parsing.details import extract_date, extract_merchant
from smsbudget.parsing.intent import INTENT_RULES, IntentRule, classify
from smsbudget.parsing.parser import parse

__all__ = [
    "AmountMatch",
    "CATEGORY_SYNONYMS",
    "DEFAULT_CATEGORIES",
    "INTENT_RULES",
    "IntentRule",
    "classify",
    "extract_amount",
    "extract_date",
    "extract_merchant",
    "match_category",
    "normalize_text",
    "parse",
]
