"""
Core Transaction Models for Couple Finance

These models define the strict schema for every record that reaches
the aggregation engine. They are designed to:
1. Enforce the record invariants once, at construction
2. Keep dates as civil calendar dates (never UTC-shifted)
3. Be serializable for storage and logging

DESIGN DECISION: Records are frozen. The only way to change a
transaction is to replace the whole record, keeping its id.
"""

import datetime as dt
import re
import unicodedata
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Income and expense categories live in disjoint key spaces."""
    INCOME = "income"
    EXPENSE = "expense"


class RecurrenceType(str, Enum):
    """
    Whether a transaction repeats.

    Informational only: recurrence never changes aggregation math.
    """
    ONE_TIME = "one_time"
    RECURRING = "recurring"

    def to_storage(self) -> str:
        """Value written by storage backends ('once' / 'monthly')."""
        return "monthly" if self is RecurrenceType.RECURRING else "once"

    @classmethod
    def from_storage(cls, value: Optional[str]) -> "RecurrenceType":
        """Storage knows 'once', 'monthly' and 'weekly'; anything else is one-time."""
        if value in ("monthly", "weekly", cls.RECURRING.value):
            return cls.RECURRING
        return cls.ONE_TIME


class PaymentMethod(str, Enum):
    """How an expense was paid."""
    CARD = "card"
    PIX = "pix"
    TED = "ted"
    CASH = "cash"


# =============================================================================
# CATEGORY KEYS
# =============================================================================

EXPENSE_CATEGORY_ALIASES: dict[str, str] = {
    "pets": "pet",
}

INCOME_CATEGORY_ALIASES: dict[str, str] = {
    "freelance": "bonus",
}

FALLBACK_CATEGORY = "outros"

_NON_KEY_CHARS = re.compile(r"[^a-z0-9]+")


def normalize_category_key(value: str, transaction_type: TransactionType) -> str:
    """
    Turn free text into a category key.

    "Alimentação" -> "alimentacao", "Pets" -> "pet", "" -> "outros".
    """
    decomposed = unicodedata.normalize("NFD", (value or "").strip().lower())
    without_marks = "".join(c for c in decomposed if not unicodedata.combining(c))
    normalized = _NON_KEY_CHARS.sub("_", without_marks).strip("_")

    if not normalized:
        return FALLBACK_CATEGORY

    if transaction_type == TransactionType.INCOME:
        return INCOME_CATEGORY_ALIASES.get(normalized, normalized)
    return EXPENSE_CATEGORY_ALIASES.get(normalized, normalized)


# =============================================================================
# DATES
# =============================================================================

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def parse_local_date(value: Any) -> dt.date:
    """
    Read a civil calendar date.

    Only the YYYY-MM-DD part of a string is used, so
    "2024-07-10T00:00:00.000Z" is July 10th in every time zone.

    Raises:
        ValueError: If the value is not a recognizable date
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Not a date: {value!r}")

    date_part = value.strip().split("T", 1)[0].split(" ", 1)[0]
    match = _ISO_DATE.match(date_part)
    if not match:
        raise ValueError(f"Unparseable date: {value!r}")

    year, month, day = (int(part) for part in match.groups())
    # date() rejects impossible days such as 2024-02-30
    return dt.date(year, month, day)


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionCreate(BaseModel):
    """
    A transaction that has not been stored yet (no id).

    This is what the bulk-import path and the add form hand to storage.
    Every instance already satisfies the record invariants:
    - amount >= 0
    - category is a normalized key for its type
    - include_in_split is False for income
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        frozen=True,
        use_enum_values=False,
    )

    type: TransactionType
    category: str = Field(
        default=FALLBACK_CATEGORY,
        description="Category key, namespaced by type"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Display text"
    )
    tag: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Free-form label, expenses only"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Currency amount"
    )
    person: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Who received the income or paid the expense"
    )
    date: dt.date = Field(
        ...,
        description="Civil calendar date, no time-of-day"
    )
    recurrence: RecurrenceType = RecurrenceType.ONE_TIME
    include_in_split: bool = Field(
        default=False,
        description="Member of the shared-expense pool (expenses only)"
    )
    payment_method: Optional[PaymentMethod] = None

    @model_validator(mode='before')
    @classmethod
    def normalize_by_type(cls, data: Any) -> Any:
        """Apply the type-dependent rules before field validation."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        try:
            tx_type = TransactionType(data.get("type"))
        except ValueError:
            # Let field validation report the bad type
            return data

        data["category"] = normalize_category_key(
            str(data.get("category") or ""), tx_type
        )

        if tx_type == TransactionType.INCOME:
            data["include_in_split"] = False
            data["tag"] = None
        elif isinstance(data.get("tag"), str) and not data["tag"].strip():
            data["tag"] = None

        return data

    @field_validator('date', mode='before')
    @classmethod
    def coerce_local_date(cls, v: Any) -> dt.date:
        return parse_local_date(v)

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def is_shared_expense(self) -> bool:
        """Counts toward the shared pool."""
        return self.is_expense and self.include_in_split


class Transaction(TransactionCreate):
    """
    A stored transaction.

    The id is assigned by storage on creation and never changes.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Identifier assigned by storage"
    )

    @classmethod
    def from_create(cls, transaction_id: UUID, data: TransactionCreate) -> "Transaction":
        """Attach a storage-assigned id to a new record."""
        return cls(id=transaction_id, **data.model_dump())

    def replace(self, **changes: Any) -> "Transaction":
        """
        Whole-record update that keeps the id.

        Goes through validation again, unlike model_copy(update=...).
        """
        changes.pop("id", None)
        values = self.model_dump()
        values.update(changes)
        return Transaction(**values)

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "id": str(self.id),
            "type": self.type.value,
            "category": self.category,
            "amount": str(self.amount),
            "person": self.person,
            "date": self.date.isoformat(),
            "include_in_split": self.include_in_split,
        }
