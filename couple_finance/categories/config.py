"""
Category Labels and Spending Thresholds

DESIGN DECISION: The built-in tables below are defaults only.
A CategoryConfig merges user-defined categories over them and is
passed explicitly into the aggregation engine, so the engine stays a
pure function of its inputs. Configs are immutable: adding a custom
category returns a new config.

Thresholds are percentages of total income. A category whose
expenses reach `medium` is flagged medium, reaching `high` is
flagged high.
"""

from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from couple_finance.models.analytics import CategoryStatus
from couple_finance.models.transaction import TransactionType, normalize_category_key


class CategoryThreshold(BaseModel):
    """Percentage-of-income cutoffs for one expense category."""
    model_config = ConfigDict(frozen=True)

    medium: Decimal = Field(..., gt=0)
    high: Decimal = Field(..., gt=0)

    @model_validator(mode='after')
    def validate_order(self) -> 'CategoryThreshold':
        if self.high < self.medium:
            raise ValueError("High threshold cannot be below medium threshold")
        return self

    def status_for(self, percentage: Decimal) -> CategoryStatus:
        """Classify a percentage; never moves backward as percentage grows."""
        if percentage >= self.high:
            return CategoryStatus.HIGH
        if percentage >= self.medium:
            return CategoryStatus.MEDIUM
        return CategoryStatus.LOW


def _threshold(medium: Union[int, str], high: Union[int, str]) -> CategoryThreshold:
    return CategoryThreshold(medium=Decimal(medium), high=Decimal(high))


# =============================================================================
# BUILT-IN DEFAULTS
# =============================================================================

DEFAULT_EXPENSE_CATEGORY_LABELS: dict[str, str] = {
    "transporte": "Transporte",
    "alimentacao": "Alimentação",
    "moradia": "Moradia",
    "assinaturas": "Assinaturas",
    "streaming": "Streaming",
    "pet": "Pet",
    "saude": "Saúde",
    "educacao": "Educação",
    "lazer": "Lazer",
    "vestuario": "Vestuário",
    "outros": "Outros",
}

DEFAULT_INCOME_CATEGORY_LABELS: dict[str, str] = {
    "salario": "Salário",
    "bonus": "Bônus",
    "investimentos": "Investimentos",
    "outros": "Outros",
}

DEFAULT_CATEGORY_THRESHOLDS: dict[str, CategoryThreshold] = {
    "transporte": _threshold(15, 20),
    "alimentacao": _threshold(20, 30),
    "moradia": _threshold(30, 40),
    "assinaturas": _threshold(3, 5),
    "streaming": _threshold(3, 5),
    "pet": _threshold(5, 8),
    "saude": _threshold(10, 15),
    "educacao": _threshold(10, 15),
    "lazer": _threshold(8, 12),
    "vestuario": _threshold(5, 8),
    "outros": _threshold(10, 15),
}

# Applies to custom categories and anything not listed above
DEFAULT_THRESHOLD = _threshold(8, 12)


class CategoryConfig(BaseModel):
    """
    Category labels and thresholds in effect for one recompute.

    Unknown keys fall back to the raw key as label and to
    `default_threshold` for status.
    """
    model_config = ConfigDict(frozen=True)

    expense_labels: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_EXPENSE_CATEGORY_LABELS)
    )
    income_labels: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_INCOME_CATEGORY_LABELS)
    )
    thresholds: dict[str, CategoryThreshold] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_THRESHOLDS)
    )
    default_threshold: CategoryThreshold = DEFAULT_THRESHOLD

    @classmethod
    def default(cls) -> "CategoryConfig":
        return cls()

    def expense_label(self, key: str) -> str:
        return self.expense_labels.get(key) or key

    def income_label(self, key: str) -> str:
        return self.income_labels.get(key) or key

    def label_for(self, key: str, transaction_type: TransactionType) -> str:
        if transaction_type == TransactionType.INCOME:
            return self.income_label(key)
        return self.expense_label(key)

    def threshold_for(self, key: str) -> CategoryThreshold:
        return self.thresholds.get(key, self.default_threshold)

    def status_for(self, key: str, percentage: Decimal) -> CategoryStatus:
        return self.threshold_for(key).status_for(percentage)

    def with_expense_category(
        self,
        key: str,
        label: str,
        threshold: Optional[CategoryThreshold] = None,
    ) -> "CategoryConfig":
        """Return a copy with a user-defined expense category merged in."""
        key = normalize_category_key(key, TransactionType.EXPENSE)
        labels = {**self.expense_labels, key: label}
        thresholds = dict(self.thresholds)
        if threshold is not None:
            thresholds[key] = threshold
        return self.model_copy(
            update={"expense_labels": labels, "thresholds": thresholds}
        )

    def with_income_category(self, key: str, label: str) -> "CategoryConfig":
        """Return a copy with a user-defined income category merged in."""
        key = normalize_category_key(key, TransactionType.INCOME)
        return self.model_copy(
            update={"income_labels": {**self.income_labels, key: label}}
        )
