"""Aggregation engine and time-bucketing helpers."""

from couple_finance.analytics.engine import (
    COMPARISON_MONTHS,
    SETTLEMENT_TOLERANCE,
    TOP_EXPENSES_LIMIT,
    balance,
    biggest_category_increase,
    category_analysis,
    compute_snapshot,
    cumulative_series,
    monthly_balance_summary,
    monthly_comparison,
    payment_method_breakdown,
    person_summaries,
    settle,
    shared_expense_breakdown,
    split_calculation,
    top_expenses,
    total_expenses,
    total_income,
    unique_people,
)
from couple_finance.analytics.periods import (
    PeriodFilter,
    filter_by_period,
    group_by_month,
    month_key,
    month_label,
)

__all__ = [
    "COMPARISON_MONTHS",
    "SETTLEMENT_TOLERANCE",
    "TOP_EXPENSES_LIMIT",
    "balance",
    "biggest_category_increase",
    "category_analysis",
    "compute_snapshot",
    "cumulative_series",
    "monthly_balance_summary",
    "monthly_comparison",
    "payment_method_breakdown",
    "person_summaries",
    "settle",
    "shared_expense_breakdown",
    "split_calculation",
    "top_expenses",
    "total_expenses",
    "total_income",
    "unique_people",
    "PeriodFilter",
    "filter_by_period",
    "group_by_month",
    "month_key",
    "month_label",
]
