"""
Core Data Models for SMS Budget

These models define the schemas for everything flowing through the
interpreter: the inbound message, the parsed command, the account the
message belongs to, and the ledger rows we write.

DESIGN DECISION: We use Pydantic v2 with frozen models.
A ParsedCommand is a value: once the parser produces it, nothing
downstream may change it. Amounts are Decimal, never float.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


CENT = Decimal("0.01")

# Non-negative USD amount with cents
Money = Annotated[Decimal, Field(ge=0, decimal_places=2)]

# Amount on a recorded transaction is strictly positive
PositiveMoney = Annotated[Decimal, Field(gt=0, decimal_places=2)]


def to_money(value) -> Decimal:
    """Quantize a number to cents (USD)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BudgetCategory(str, Enum):
    """
    Default budget categories.

    Accounts normally carry their own category list; this is the set
    used when none is supplied, and it matches what new accounts are
    seeded with.
    """
    HOUSING = "Housing"
    TRANSPORTATION = "Transportation"
    FOOD = "Food"
    UTILITIES = "Utilities"
    INSURANCE = "Insurance"
    HEALTHCARE = "Healthcare"
    SAVINGS = "Savings"
    PERSONAL = "Personal"
    ENTERTAINMENT = "Entertainment"
    DEBT = "Debt"
    INCOME = "Income"
    OTHER = "Other"


class TransactionKind(str, Enum):
    """Direction of a ledger transaction."""
    EXPENSE = "expense"
    INCOME = "income"


class IntentTag(str, Enum):
    """Coarse purpose of an inbound message."""
    EXPENSE = "expense"
    INCOME = "income"
    BUDGET_QUERY = "budget_query"
    HELP = "help"
    UNKNOWN = "unknown"


class ParseFailureReason(str, Enum):
    """Why a message could not be turned into an actionable command."""
    NO_AMOUNT_FOUND = "no_amount_found"
    NO_INTENT_MATCHED = "no_intent_matched"
    AMOUNT_NOT_POSITIVE = "amount_not_positive"


# =============================================================================
# INBOUND MESSAGE
# =============================================================================

class InboundMessage(BaseModel):
    """
    One inbound text message.

    The transport layer has already verified where it came from.
    Created once per webhook call and never persisted.
    """
    model_config = ConfigDict(frozen=True)

    from_phone: str = Field(
        ...,
        min_length=1,
        description="Sender phone number as delivered by the transport"
    )
    body: str = Field(
        ...,
        description="Raw message text"
    )
    received_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the message reached us"
    )


# =============================================================================
# PARSED COMMANDS (tagged union)
# =============================================================================

class RecordTransaction(BaseModel):
    """Record an expense or an income."""
    model_config = ConfigDict(frozen=True)

    command_type: Literal["record_transaction"] = "record_transaction"
    kind: TransactionKind
    amount: PositiveMoney
    category: Optional[str] = Field(
        default=None,
        description="Matched category name; None means use the default category"
    )
    description: str = Field(
        default="",
        description="Message text with the amount removed"
    )
    merchant: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Merchant named with 'at ...' or 'from ...'"
    )
    occurred_on: Optional[date] = Field(
        default=None,
        description="Date mentioned in the message; None means today"
    )


class BudgetQuery(BaseModel):
    """Ask how much of this month's budget is left."""
    model_config = ConfigDict(frozen=True)

    command_type: Literal["budget_query"] = "budget_query"
    category: Optional[str] = Field(
        default=None,
        description="Category to report on; None means all categories"
    )


class HelpRequest(BaseModel):
    """Ask for the list of supported commands."""
    model_config = ConfigDict(frozen=True)

    command_type: Literal["help_request"] = "help_request"


class Unrecognized(BaseModel):
    """A message we could not act on."""
    model_config = ConfigDict(frozen=True)

    command_type: Literal["unrecognized"] = "unrecognized"
    reason: ParseFailureReason


ParsedCommand = Annotated[
    Union[RecordTransaction, BudgetQuery, HelpRequest, Unrecognized],
    Field(discriminator="command_type"),
]


# =============================================================================
# ACCOUNT & LEDGER MODELS
# =============================================================================

class CategoryRef(BaseModel):
    """A category as stored for one budget account."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    category_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)


class AccountRef(BaseModel):
    """
    The budget account a phone number resolves to.

    Carries the account's categories so the parser can match against
    them without a database round-trip.
    """
    model_config = ConfigDict(frozen=True)

    account_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    categories: tuple[CategoryRef, ...] = Field(default_factory=tuple)

    @property
    def category_names(self) -> list[str]:
        return [category.name for category in self.categories]

    def find_category(self, name: Optional[str]) -> Optional[CategoryRef]:
        """Look up a category by name, ignoring case."""
        if not name:
            return None
        wanted = name.strip().lower()
        for category in self.categories:
            if category.name.lower() == wanted:
                return category
        return None


class BudgetStatus(BaseModel):
    """Allocated vs. spent for one category (or all) in one month."""
    model_config = ConfigDict(frozen=True)

    allocated: Money = Field(default=Decimal("0.00"))
    spent: Money = Field(default=Decimal("0.00"))

    @property
    def remaining(self) -> Decimal:
        """Can be negative when the budget is exceeded."""
        return self.allocated - self.spent

    @property
    def is_over_budget(self) -> bool:
        return self.remaining < 0


class LedgerTransaction(BaseModel):
    """A transaction row as persisted by a storage backend."""
    model_config = ConfigDict(frozen=True)

    transaction_id: str = Field(default_factory=lambda: uuid4().hex)
    account_id: str
    category_id: str
    kind: TransactionKind
    amount: PositiveMoney
    description: str = ""
    merchant: Optional[str] = None
    occurred_on: date
    created_at: datetime = Field(default_factory=datetime.utcnow)
