"""
Financial Aggregation Engine

DESIGN DECISION: Every view is a pure function of the transaction
list (plus the category config). Nothing is cached between calls and
nothing is updated incrementally; compute_snapshot() rebuilds every
view from scratch each time the list or the period filter changes.

GUARANTEES:
- No division by zero: zero income and zero pools resolve to the
  documented fallbacks (0% burden, 50/50 split, 0% ratios)
- Fewer than two participants yields no split (None), never an error
- Equal inputs give equal outputs
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Optional

from couple_finance.analytics.periods import (
    PeriodFilter,
    day_key,
    day_label,
    filter_by_period,
    group_by_month,
    month_label,
    month_label_for_key,
    trailing_month_keys,
)
from couple_finance.categories.config import CategoryConfig
from couple_finance.models.analytics import (
    CategoryAnalysis,
    CategoryChange,
    CategoryStatus,
    CumulativePoint,
    FinancialSnapshot,
    MonthlyBalanceSummary,
    MonthlyComparison,
    PaymentMethodMonth,
    PersonSummary,
    Settlement,
    SharedCategoryBreakdown,
    SharedPersonBreakdown,
    SplitCalculation,
)
from couple_finance.models.transaction import Transaction


ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Currency rounding epsilon: differences up to one cent are settled
SETTLEMENT_TOLERANCE = Decimal("0.01")

# Percentage reported for a category that had nothing the month before
NEW_CATEGORY_CHANGE_PERCENTAGE = HUNDRED

# Income split used when neither person has any income
EQUAL_SPLIT_PERCENTAGE = Decimal("50")

TOP_EXPENSES_LIMIT = 10
COMPARISON_MONTHS = 6


def _sum(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions), ZERO)


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, or 0 when whole is not positive."""
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


def expenses_of(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_expense]


def incomes_of(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_income]


def shared_expenses_of(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_shared_expense]


# =============================================================================
# TOTALS
# =============================================================================

def total_income(transactions: Iterable[Transaction]) -> Decimal:
    return _sum(incomes_of(transactions))


def total_expenses(transactions: Iterable[Transaction]) -> Decimal:
    return _sum(expenses_of(transactions))


def balance(transactions: Sequence[Transaction]) -> Decimal:
    return total_income(transactions) - total_expenses(transactions)


# =============================================================================
# CATEGORY ANALYSIS
# =============================================================================

def category_analysis(
    transactions: Sequence[Transaction],
    config: Optional[CategoryConfig] = None,
    income: Optional[Decimal] = None,
) -> list[CategoryAnalysis]:
    """
    One entry per expense category, sorted by descending percentage.

    Without income the percentage of every category is 0 and its
    status low: spending burden cannot be judged without income.
    """
    config = config or CategoryConfig.default()
    if income is None:
        income = total_income(transactions)

    totals: dict[str, Decimal] = {}
    for expense in expenses_of(transactions):
        totals[expense.category] = totals.get(expense.category, ZERO) + expense.amount

    analysis = []
    for category, total in totals.items():
        percentage = _percentage(total, income)
        analysis.append(CategoryAnalysis(
            category=category,
            label=config.expense_label(category),
            total=total,
            percentage=percentage,
            status=config.status_for(category, percentage) if income > 0 else CategoryStatus.LOW,
        ))

    # sorted() is stable, so equal percentages keep first-seen order
    return sorted(analysis, key=lambda a: a.percentage, reverse=True)


# =============================================================================
# TOP EXPENSES
# =============================================================================

def top_expenses(
    transactions: Sequence[Transaction],
    limit: int = TOP_EXPENSES_LIMIT,
) -> list[Transaction]:
    """Largest expenses first; ties keep their input order."""
    ranked = sorted(expenses_of(transactions), key=lambda t: t.amount, reverse=True)
    return ranked[:limit]


# =============================================================================
# MONTHLY VIEWS
# =============================================================================

def monthly_comparison(
    transactions: Sequence[Transaction],
    months: int = COMPARISON_MONTHS,
) -> list[MonthlyComparison]:
    """Per-category expense totals for the most recent months present in the data."""
    buckets = group_by_month(expenses_of(transactions))
    keys = trailing_month_keys(buckets, months)

    comparison = []
    for key in keys:
        categories: dict[str, Decimal] = {}
        for expense in buckets[key]:
            categories[expense.category] = categories.get(expense.category, ZERO) + expense.amount
        comparison.append(MonthlyComparison(
            month=month_label_for_key(key),
            month_key=key,
            categories=categories,
            total=_sum(buckets[key]),
        ))
    return comparison


def monthly_balance_summary(
    transactions: Sequence[Transaction],
    months: int = COMPARISON_MONTHS,
) -> list[MonthlyBalanceSummary]:
    """Income, expenses and balance for the most recent months present in the data."""
    buckets = group_by_month(transactions)
    keys = trailing_month_keys(buckets, months)

    summary = []
    for key in keys:
        income = total_income(buckets[key])
        expenses = total_expenses(buckets[key])
        summary.append(MonthlyBalanceSummary(
            month=month_label_for_key(key),
            month_key=key,
            income=income,
            expenses=expenses,
            balance=income - expenses,
        ))
    return summary


def biggest_category_increase(
    comparison: Sequence[MonthlyComparison],
    config: Optional[CategoryConfig] = None,
) -> Optional[CategoryChange]:
    """
    The category that grew the most between the last two months.

    Only increases qualify. Returns None when there are fewer than
    two months or when no category went up.
    """
    if len(comparison) < 2:
        return None

    config = config or CategoryConfig.default()
    previous, current = comparison[-2], comparison[-1]

    # Deterministic candidate order: current month first, then the rest
    categories = list(current.categories)
    categories += [c for c in previous.categories if c not in current.categories]

    biggest: Optional[CategoryChange] = None
    for category in categories:
        current_value = current.categories.get(category, ZERO)
        previous_value = previous.categories.get(category, ZERO)
        change = current_value - previous_value

        if change <= 0:
            continue
        if biggest is not None and change <= biggest.change:
            continue

        if previous_value > 0:
            change_percentage = change / previous_value * HUNDRED
        else:
            change_percentage = NEW_CATEGORY_CHANGE_PERCENTAGE

        biggest = CategoryChange(
            category=category,
            label=config.expense_label(category),
            previous_month=previous.month,
            current_month=current.month,
            previous_value=previous_value,
            current_value=current_value,
            change=change,
            change_percentage=change_percentage,
        )

    return biggest


def cumulative_series(
    transactions: Sequence[Transaction],
    unit: str = "daily",
) -> list[CumulativePoint]:
    """
    Running income/expense/balance totals, one point per day or month.

    Raises:
        ValueError: If unit is neither "daily" nor "monthly"
    """
    if unit not in ("daily", "monthly"):
        raise ValueError(f"Unknown unit: {unit}")

    buckets: dict[str, list[Transaction]] = {}
    if unit == "monthly":
        buckets = group_by_month(transactions)
    else:
        for transaction in transactions:
            buckets.setdefault(day_key(transaction.date), []).append(transaction)

    points = []
    running_income = ZERO
    running_expenses = ZERO
    for key in sorted(buckets):
        bucket = buckets[key]
        income = total_income(bucket)
        expenses = total_expenses(bucket)
        running_income += income
        running_expenses += expenses

        if unit == "monthly":
            label = month_label_for_key(key)
        else:
            label = day_label(bucket[0].date)

        points.append(CumulativePoint(
            key=key,
            label=label,
            income=income,
            expenses=expenses,
            balance=income - expenses,
            cumulative_income=running_income,
            cumulative_expenses=running_expenses,
            cumulative_balance=running_income - running_expenses,
        ))
    return points


def payment_method_breakdown(transactions: Sequence[Transaction]) -> list[PaymentMethodMonth]:
    """
    Monthly expenses per person and payment method.

    Expenses without a payment method are left out. Every month lists
    every (person, method) pair seen in the data, zero-filled.
    """
    paid = [t for t in expenses_of(transactions) if t.payment_method is not None]
    people = sorted({t.person for t in paid})
    methods = sorted({t.payment_method.value for t in paid})

    breakdown = []
    for key, bucket in group_by_month(paid).items():
        totals = {person: {method: ZERO for method in methods} for person in people}
        for expense in bucket:
            totals[expense.person][expense.payment_method.value] += expense.amount
        breakdown.append(PaymentMethodMonth(
            month=month_label(bucket[0].date),
            month_key=key,
            totals=totals,
        ))
    return breakdown


# =============================================================================
# PEOPLE
# =============================================================================

def unique_people(transactions: Iterable[Transaction]) -> list[str]:
    """Distinct participants in lexicographic order."""
    return sorted({t.person for t in transactions})


def person_summaries(transactions: Sequence[Transaction]) -> dict[str, PersonSummary]:
    summaries = {}
    for person in unique_people(transactions):
        own = [t for t in transactions if t.person == person]
        income = total_income(own)
        expenses = total_expenses(own)
        summaries[person] = PersonSummary(
            person=person,
            income=income,
            expenses=expenses,
            balance=income - expenses,
            expense_ratio=_percentage(expenses, income),
        )
    return summaries


# =============================================================================
# EXPENSE SPLIT
# =============================================================================

def settle(person1: str, person2: str, person1_difference: Decimal) -> Settlement:
    """
    Turn person1's overpayment (positive) or underpayment (negative)
    into a single transfer between the two.
    """
    if abs(person1_difference) <= SETTLEMENT_TOLERANCE:
        return Settlement()
    if person1_difference > 0:
        return Settlement(from_person=person2, to_person=person1, amount=person1_difference)
    return Settlement(from_person=person1, to_person=person2, amount=-person1_difference)


def split_calculation(transactions: Sequence[Transaction]) -> Optional[SplitCalculation]:
    """
    Split the shared pool in proportion to each person's income.

    person1 and person2 are the first two participants in sorted
    order; further participants are not part of the split. A shared
    expense paid by anyone else still counts toward the pool but not
    toward either person's actual paid amount.

    Returns None when fewer than two people appear in the data.
    """
    people = unique_people(transactions)
    if len(people) < 2:
        return None
    person1, person2 = people[0], people[1]

    person1_income = total_income(t for t in transactions if t.person == person1)
    person2_income = total_income(t for t in transactions if t.person == person2)
    combined_income = person1_income + person2_income

    if combined_income > 0:
        person1_percentage = person1_income / combined_income * HUNDRED
        person2_percentage = person2_income / combined_income * HUNDRED
    else:
        person1_percentage = EQUAL_SPLIT_PERCENTAGE
        person2_percentage = EQUAL_SPLIT_PERCENTAGE

    shared = shared_expenses_of(transactions)
    pool = _sum(shared)

    person1_ideal = pool * person1_percentage / HUNDRED
    person2_ideal = pool * person2_percentage / HUNDRED

    person1_paid = _sum(t for t in shared if t.person == person1)
    person2_paid = _sum(t for t in shared if t.person == person2)

    return SplitCalculation(
        person1=person1,
        person2=person2,
        person1_income=person1_income,
        person2_income=person2_income,
        person1_income_percentage=person1_percentage,
        person2_income_percentage=person2_percentage,
        total_shared_expenses=pool,
        person1_ideal_share=person1_ideal,
        person2_ideal_share=person2_ideal,
        person1_actual_paid=person1_paid,
        person2_actual_paid=person2_paid,
        person1_expense_to_income_ratio=_percentage(person1_paid, person1_income),
        person2_expense_to_income_ratio=_percentage(person2_paid, person2_income),
        settlement=settle(person1, person2, person1_paid - person1_ideal),
    )


def shared_expense_breakdown(
    transactions: Sequence[Transaction],
    config: Optional[CategoryConfig] = None,
) -> tuple[list[SharedCategoryBreakdown], list[SharedPersonBreakdown]]:
    """Shared pool by category (with payers) and by payer (with categories)."""
    config = config or CategoryConfig.default()
    shared = shared_expenses_of(transactions)

    by_category: dict[str, dict[str, Decimal]] = {}
    by_person: dict[str, dict[str, Decimal]] = {}
    for expense in shared:
        payers = by_category.setdefault(expense.category, {})
        payers[expense.person] = payers.get(expense.person, ZERO) + expense.amount
        categories = by_person.setdefault(expense.person, {})
        categories[expense.category] = categories.get(expense.category, ZERO) + expense.amount

    category_rows = [
        SharedCategoryBreakdown(
            category=category,
            label=config.expense_label(category),
            total=sum(payers.values(), ZERO),
            by_person=payers,
        )
        for category, payers in by_category.items()
    ]
    person_rows = [
        SharedPersonBreakdown(
            person=person,
            total=sum(categories.values(), ZERO),
            by_category=categories,
        )
        for person, categories in by_person.items()
    ]
    return (
        sorted(category_rows, key=lambda r: r.total, reverse=True),
        sorted(person_rows, key=lambda r: r.total, reverse=True),
    )


# =============================================================================
# SNAPSHOT
# =============================================================================

def compute_snapshot(
    transactions: Iterable[Transaction],
    period: Optional[PeriodFilter] = None,
    config: Optional[CategoryConfig] = None,
) -> FinancialSnapshot:
    """
    Filter by period, then recompute every derived view in full.
    """
    config = config or CategoryConfig.default()
    filtered = filter_by_period(transactions, period)

    income = total_income(filtered)
    expenses = total_expenses(filtered)
    comparison = monthly_comparison(filtered)
    shared_by_category, shared_by_person = shared_expense_breakdown(filtered, config)

    return FinancialSnapshot(
        transactions=filtered,
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        category_analysis=category_analysis(filtered, config, income),
        top_expenses=top_expenses(filtered),
        monthly_comparison=comparison,
        monthly_balance_summary=monthly_balance_summary(filtered),
        biggest_category_increase=biggest_category_increase(comparison, config),
        unique_people=unique_people(filtered),
        person_summaries=person_summaries(filtered),
        split=split_calculation(filtered),
        shared_by_category=shared_by_category,
        shared_by_person=shared_by_person,
    )
