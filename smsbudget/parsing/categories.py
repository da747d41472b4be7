"""
Category Matching

Maps a fragment of free text onto one of a closed set of category names.

DESIGN DECISION: The matcher never invents a category. It is handed the
category names that exist (normally the account's own list) and either
returns one of them, spelled exactly as given, or None. Falling back to
a default category is the dispatcher's job, not ours.

Matching is keyword containment checked in the given category order:
the first category whose name, or one of its synonyms, appears in the
text wins.
"""

import re
from typing import Iterable, Optional

from smsbudget.models.command import BudgetCategory


# Fixed synonyms, keyed by lower-cased category name.
# Multi-word synonyms are allowed ("gas station").
CATEGORY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "housing": (
        "rent", "mortgage", "hoa", "apartment", "landlord", "home repair",
    ),
    "transportation": (
        "gas station", "fuel", "petrol", "uber", "lyft", "taxi", "bus",
        "train", "metro", "subway", "parking", "toll",
    ),
    # No meal words: "$30 lunch" stays uncategorized
    "food": (
        "groceries", "grocery", "supermarket", "restaurant", "dining",
    ),
    "utilities": (
        "electric", "electricity", "water bill", "internet", "phone bill",
        "cable", "utility", "power bill", "gas bill",
    ),
    "insurance": (
        "premium", "geico", "state farm",
    ),
    "healthcare": (
        "doctor", "dentist", "pharmacy", "medicine", "medical",
        "hospital", "prescription", "health",
    ),
    "savings": (
        "saving", "save", "emergency fund", "investment", "invest",
    ),
    "personal": (
        "haircut", "clothes", "clothing", "gym", "shopping", "gift",
    ),
    "entertainment": (
        "movie", "movies", "netflix", "spotify", "concert", "game",
        "games", "bar", "drinks", "streaming",
    ),
    "debt": (
        "loan", "credit card", "car payment",
    ),
    "income": (
        "salary", "paycheck", "freelance", "bonus", "wages",
    ),
    "other": (),
}

DEFAULT_CATEGORIES: tuple[str, ...] = tuple(c.value for c in BudgetCategory)

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_text(text: str) -> str:
    """Lower-case, turn punctuation into spaces, collapse whitespace."""
    return " ".join(_PUNCTUATION.sub(" ", text.lower()).split())


def category_keywords(category: str) -> tuple[str, ...]:
    """The category's own name plus its synonyms, normalized."""
    key = normalize_text(category)
    return (key,) + tuple(
        normalize_text(s) for s in CATEGORY_SYNONYMS.get(key, ())
    )


def match_category(
    text: str,
    known_categories: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """
    Find the first known category mentioned in text.

    Args:
        text: Message fragment to search
        known_categories: Category names to choose from, in priority
            order. Defaults to BudgetCategory.

    Returns:
        The matching name exactly as it appears in known_categories,
        or None.
    """
    normalized = normalize_text(text or "")
    if not normalized:
        return None

    # Pad so containment respects word boundaries ("bus" vs "business")
    haystack = f" {normalized} "

    categories = DEFAULT_CATEGORIES if known_categories is None else known_categories
    for category in categories:
        for keyword in category_keywords(category):
            if keyword and f" {keyword} " in haystack:
                return category

    return None
