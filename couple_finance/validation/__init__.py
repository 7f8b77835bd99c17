"""Import validation package."""

from couple_finance.validation.validator import (
    TransactionValidator,
    canonical_row,
    parse_brl_amount,
    parse_flag,
    parse_import_date,
)

__all__ = [
    "TransactionValidator",
    "canonical_row",
    "parse_brl_amount",
    "parse_flag",
    "parse_import_date",
]
