"""
Period Filtering and Time Bucketing

All bucketing works on civil dates: a transaction dated 2024-07-10
belongs to month "2024-07" no matter which time zone reads it.
Transactions are never converted to timestamps.
"""

import calendar
from collections.abc import Iterable
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from couple_finance.models.transaction import Transaction, parse_local_date


MONTH_ABBREVIATIONS = (
    "jan", "fev", "mar", "abr", "mai", "jun",
    "jul", "ago", "set", "out", "nov", "dez",
)

__all__ = [
    "MONTH_ABBREVIATIONS",
    "PeriodFilter",
    "day_key",
    "day_label",
    "filter_by_period",
    "group_by_month",
    "month_key",
    "month_label",
    "month_label_for_key",
    "parse_local_date",
    "trailing_month_keys",
]


def month_key(value: date) -> str:
    """2024-07-10 -> '2024-07'"""
    return f"{value.year:04d}-{value.month:02d}"


def day_key(value: date) -> str:
    return value.isoformat()


def month_label(value: date) -> str:
    """2024-07-10 -> 'jul/24'"""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]}/{value.year % 100:02d}"


def day_label(value: date) -> str:
    """2024-07-10 -> '10/07'"""
    return f"{value.day:02d}/{value.month:02d}"


class PeriodFilter(BaseModel):
    """
    Which transactions the derived views look at.

    Either an inclusive date range (one or both bounds) or a calendar
    month regardless of year. An empty filter selects everything.
    """
    model_config = ConfigDict(frozen=True)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    month: Optional[int] = Field(
        default=None,
        ge=1,
        le=12,
        description="Calendar month (1-12) matched in any year"
    )

    @model_validator(mode='after')
    def validate_bounds(self) -> 'PeriodFilter':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Period end cannot be before start")
        if self.month is not None and (self.start_date or self.end_date):
            raise ValueError("A month selector cannot be combined with date bounds")
        return self

    @classmethod
    def for_month(cls, year: int, month: int) -> "PeriodFilter":
        """First to last day of one specific month."""
        last_day = calendar.monthrange(year, month)[1]
        return cls(start_date=date(year, month, 1), end_date=date(year, month, last_day))

    @property
    def is_empty(self) -> bool:
        return self.start_date is None and self.end_date is None and self.month is None

    def contains(self, value: date) -> bool:
        if self.month is not None:
            return value.month == self.month
        if self.start_date and value < self.start_date:
            return False
        if self.end_date and value > self.end_date:
            return False
        return True


def filter_by_period(
    transactions: Iterable[Transaction],
    period: Optional[PeriodFilter] = None,
) -> list[Transaction]:
    """Keep the transactions inside the period, preserving order."""
    if period is None or period.is_empty:
        return list(transactions)
    return [t for t in transactions if period.contains(t.date)]


def group_by_month(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    """Bucket by month key; keys come out in chronological order."""
    buckets: dict[str, list[Transaction]] = {}
    for transaction in transactions:
        buckets.setdefault(month_key(transaction.date), []).append(transaction)
    return {key: buckets[key] for key in sorted(buckets)}


def trailing_month_keys(keys: Iterable[str], count: int = 6) -> list[str]:
    """The `count` most recent distinct month keys, oldest first."""
    ordered = sorted(set(keys))
    if count <= 0:
        return []
    return ordered[-count:]


def month_label_for_key(key: str) -> str:
    """'2024-07' -> 'jul/24'"""
    year, month = key.split("-")
    return month_label(date(int(year), int(month), 1))
