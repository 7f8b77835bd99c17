"""
Data Models Package

This package contains all Pydantic models used in Couple Finance.
Every record handed to the aggregation engine is a Transaction.
"""

from couple_finance.models.transaction import (
    FALLBACK_CATEGORY,
    PaymentMethod,
    RecurrenceType,
    Transaction,
    TransactionCreate,
    TransactionType,
    normalize_category_key,
    parse_local_date,
)
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
from couple_finance.models.validation import (
    ImportResult,
    RowValidation,
    ValidationIssue,
)
from couple_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "FALLBACK_CATEGORY",
    "PaymentMethod",
    "RecurrenceType",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "normalize_category_key",
    "parse_local_date",
    # Derived views
    "CategoryAnalysis",
    "CategoryChange",
    "CategoryStatus",
    "CumulativePoint",
    "FinancialSnapshot",
    "MonthlyBalanceSummary",
    "MonthlyComparison",
    "PaymentMethodMonth",
    "PersonSummary",
    "Settlement",
    "SharedCategoryBreakdown",
    "SharedPersonBreakdown",
    "SplitCalculation",
    # Import validation
    "ImportResult",
    "RowValidation",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
