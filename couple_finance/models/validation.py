"""
Import Validation Models

Results of validating candidate rows before they reach storage.
Kept separate from the transaction models because nothing in the
aggregation engine ever sees them.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from couple_finance.models.transaction import TransactionCreate


class ValidationIssue(BaseModel):
    """Single validation issue found in an import row."""
    row: int = Field(..., ge=1, description="1-based row number in the import")
    field: str
    issue_type: str  # "missing", "invalid_value", "future_date", etc.
    message: str
    severity: Literal["error", "warning"]
    suggested_fix: Optional[str] = None


class RowValidation(BaseModel):
    """Outcome of validating one candidate row."""
    row: int = Field(..., ge=1)
    transaction: Optional[TransactionCreate] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """A row is accepted when it produced a transaction and no errors."""
        return self.transaction is not None and not any(
            issue.severity == "error" for issue in self.issues
        )

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


class ImportResult(BaseModel):
    """Outcome of validating a whole batch of candidate rows."""
    transactions: list[TransactionCreate] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)
    rejected_rows: list[int] = Field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.transactions)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected_rows)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]
