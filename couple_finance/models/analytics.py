"""
Derived View Models

Everything in this module is computed from the transaction list by
the aggregation engine. Nothing here is persisted, cached or updated
incrementally: each recompute builds fresh instances.

Monetary values and percentages are Decimals so that equal inputs
always produce equal outputs.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from couple_finance.models.transaction import Transaction


ZERO = Decimal("0")


class CategoryStatus(str, Enum):
    """Spending burden of a category relative to total income."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# CATEGORY VIEWS
# =============================================================================

class CategoryAnalysis(BaseModel):
    """Expense total of one category as a share of total income."""

    category: str
    label: str
    total: Decimal = Field(ge=0)
    percentage: Decimal = Field(
        ...,
        ge=0,
        description="total / total income * 100, or 0 without income"
    )
    status: CategoryStatus


class SharedCategoryBreakdown(BaseModel):
    """Shared-pool spending of one category, split by payer."""

    category: str
    label: str
    total: Decimal
    by_person: dict[str, Decimal] = Field(default_factory=dict)


class SharedPersonBreakdown(BaseModel):
    """Shared-pool spending of one payer, split by category."""

    person: str
    total: Decimal
    by_category: dict[str, Decimal] = Field(default_factory=dict)


# =============================================================================
# MONTHLY VIEWS
# =============================================================================

class MonthlyComparison(BaseModel):
    """Expenses of one calendar month, per category."""

    month: str = Field(..., description="Display label, e.g. 'jul/24'")
    month_key: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    categories: dict[str, Decimal] = Field(default_factory=dict)
    total: Decimal = ZERO


class MonthlyBalanceSummary(BaseModel):
    """Income, expenses and balance of one calendar month."""

    month: str
    month_key: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    balance: Decimal = ZERO


class CategoryChange(BaseModel):
    """
    The largest month-over-month increase of a single category.

    change_percentage is 100 when the category had nothing in the
    previous month.
    """

    category: str
    label: str
    previous_month: str
    current_month: str
    previous_value: Decimal
    current_value: Decimal
    change: Decimal = Field(..., gt=0)
    change_percentage: Decimal


class CumulativePoint(BaseModel):
    """One step of the running income/expense totals."""

    key: str = Field(..., description="YYYY-MM-DD or YYYY-MM")
    label: str
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    balance: Decimal = ZERO
    cumulative_income: Decimal = ZERO
    cumulative_expenses: Decimal = ZERO
    cumulative_balance: Decimal = ZERO


class PaymentMethodMonth(BaseModel):
    """Expenses of one month keyed by (person, payment method)."""

    month: str
    month_key: str
    totals: dict[str, dict[str, Decimal]] = Field(
        default_factory=dict,
        description="person -> payment method -> amount"
    )


# =============================================================================
# PEOPLE AND SPLIT
# =============================================================================

class PersonSummary(BaseModel):
    """Income and spending of one participant."""

    person: str
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    balance: Decimal = ZERO
    expense_ratio: Decimal = Field(
        default=ZERO,
        description="expenses / income * 100, or 0 without income"
    )


class Settlement(BaseModel):
    """
    The single transfer that evens out the shared pool.

    A balanced settlement has no parties and an amount of exactly 0.
    """

    from_person: Optional[str] = None
    to_person: Optional[str] = None
    amount: Decimal = Field(default=ZERO, ge=0)

    @property
    def is_balanced(self) -> bool:
        return self.from_person is None and self.to_person is None


class SplitCalculation(BaseModel):
    """
    Proportional expense split between the two designated persons.

    person1 and person2 are the first two participants in
    lexicographic order.
    """

    person1: str
    person2: str

    person1_income: Decimal
    person2_income: Decimal
    person1_income_percentage: Decimal
    person2_income_percentage: Decimal

    total_shared_expenses: Decimal
    person1_ideal_share: Decimal
    person2_ideal_share: Decimal
    person1_actual_paid: Decimal
    person2_actual_paid: Decimal
    person1_expense_to_income_ratio: Decimal
    person2_expense_to_income_ratio: Decimal

    settlement: Settlement

    @property
    def person1_difference(self) -> Decimal:
        """Positive when person1 paid more than their ideal share."""
        return self.person1_actual_paid - self.person1_ideal_share

    @property
    def person2_difference(self) -> Decimal:
        return self.person2_actual_paid - self.person2_ideal_share


# =============================================================================
# SNAPSHOT
# =============================================================================

class FinancialSnapshot(BaseModel):
    """
    Every derived view of one recompute pass.

    split is None when fewer than two people appear in the data;
    biggest_category_increase is None when no category grew.
    """

    transactions: list[Transaction] = Field(
        default_factory=list,
        description="The period-filtered transactions the views were built from"
    )
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    balance: Decimal = ZERO

    category_analysis: list[CategoryAnalysis] = Field(default_factory=list)
    top_expenses: list[Transaction] = Field(default_factory=list)
    monthly_comparison: list[MonthlyComparison] = Field(default_factory=list)
    monthly_balance_summary: list[MonthlyBalanceSummary] = Field(default_factory=list)
    biggest_category_increase: Optional[CategoryChange] = None

    unique_people: list[str] = Field(default_factory=list)
    person_summaries: dict[str, PersonSummary] = Field(default_factory=dict)
    split: Optional[SplitCalculation] = None
    shared_by_category: list[SharedCategoryBreakdown] = Field(default_factory=list)
    shared_by_person: list[SharedPersonBreakdown] = Field(default_factory=list)
