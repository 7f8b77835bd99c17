"""Category configuration package."""

from couple_finance.categories.config import (
    DEFAULT_CATEGORY_THRESHOLDS,
    DEFAULT_EXPENSE_CATEGORY_LABELS,
    DEFAULT_INCOME_CATEGORY_LABELS,
    DEFAULT_THRESHOLD,
    CategoryConfig,
    CategoryThreshold,
)

__all__ = [
    "DEFAULT_CATEGORY_THRESHOLDS",
    "DEFAULT_EXPENSE_CATEGORY_LABELS",
    "DEFAULT_INCOME_CATEGORY_LABELS",
    "DEFAULT_THRESHOLD",
    "CategoryConfig",
    "CategoryThreshold",
]
