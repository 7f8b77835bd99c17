"""
Two-Stage Validation Pipeline for Bulk Imports

DESIGN DECISION: Candidate rows (from a pasted table or a CSV file)
are validated in two distinct stages before they reach storage:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (description, amount, date, person)
- Format validation (amounts in BRL notation, dates)
- Known transaction type
- A row with any error here is rejected

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Absurd amount detection
- Zero amounts
- These only produce warnings; the row is still imported

The aggregation engine never re-validates: whatever passes here is
a well-formed Transaction.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the source table.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from couple_finance.config import AppSettings, get_settings
from couple_finance.models.transaction import (
    PaymentMethod,
    RecurrenceType,
    TransactionCreate,
    TransactionType,
    parse_local_date,
)
from couple_finance.models.validation import (
    ImportResult,
    RowValidation,
    ValidationIssue,
)


# Header spellings accepted for each field (lowercase, accents kept)
COLUMN_ALIASES: dict[str, str] = {
    "data": "date",
    "dt": "date",
    "descricao": "description",
    "descrição": "description",
    "desc": "description",
    "valor": "amount",
    "brl": "amount",
    "value": "amount",
    "responsavel": "person",
    "responsável": "person",
    "pessoa": "person",
    "categoria": "category",
    "cat": "category",
    "tipo": "type",
    "tagdespesa": "tag",
    "tags": "tag",
    "incluirrateio": "include_in_split",
    "rateio": "include_in_split",
    "split": "include_in_split",
    "recorrencia": "recurrence",
    "recorrência": "recurrence",
    "pagamento": "payment_method",
    "forma_pagamento": "payment_method",
}

TYPE_SPELLINGS: dict[str, TransactionType] = {
    "income": TransactionType.INCOME,
    "receita": TransactionType.INCOME,
    "expense": TransactionType.EXPENSE,
    "despesa": TransactionType.EXPENSE,
}

TRUE_SPELLINGS = frozenset({"true", "sim", "yes", "1", "s", "y", "x"})
FALSE_SPELLINGS = frozenset({"false", "nao", "não", "no", "0", "n"})

_CENT = Decimal("0.01")
_PT_BR_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def canonical_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Map header spellings ("Valor", "Descrição") onto field names."""
    result: dict[str, Any] = {}
    for key, value in row.items():
        normalized = _text(key).lower().replace(" ", "_")
        result[COLUMN_ALIASES.get(normalized, normalized)] = value
    return result


def _finite(amount: Decimal) -> Optional[Decimal]:
    return amount if amount.is_finite() else None


def parse_brl_amount(value: Any) -> Optional[Decimal]:
    """
    Read an amount written in Brazilian or plain notation.

    "1.234,56" -> 1234.56, "R$ 10,5" -> 10.5, "12.5" -> 12.5,
    "1.234" -> 1234 (a single dot followed by three digits is a
    thousands separator). Returns None when no number can be read.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        return _finite(Decimal(value))
    if isinstance(value, float):
        return _finite(Decimal(str(value)))

    text = re.sub(r"\s", "", _text(value))
    text = re.sub(r"r\$", "", text, flags=re.IGNORECASE)
    if not text:
        return None

    negative = text.startswith("-")
    cleaned = re.sub(r"[^\d,.]", "", text.lstrip("-"))
    if not re.search(r"\d", cleaned):
        return None

    if "," in cleaned:
        integer_part, _, decimal_part = cleaned.partition(",")
        integer_digits = integer_part.replace(".", "")
        decimal_digits = re.sub(r"\D", "", decimal_part)
        normalized = f"{integer_digits}.{decimal_digits}" if decimal_digits else integer_digits
    elif cleaned.count(".") == 1 and len(cleaned.split(".")[1]) in (1, 2):
        normalized = cleaned
    else:
        normalized = cleaned.replace(".", "")

    try:
        amount = Decimal(normalized or "0")
    except InvalidOperation:
        return None
    return _finite(-amount if negative else amount)


def parse_import_date(value: Any) -> date:
    """
    Read a date cell: ISO (YYYY-MM-DD, optionally with a time part)
    or pt-BR (DD/MM/YYYY).

    Raises:
        ValueError: If the value is not a recognizable date
    """
    if isinstance(value, (date, datetime)):
        return parse_local_date(value)

    text = _text(value)
    match = _PT_BR_DATE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return date(year, month, day)
    return parse_local_date(text)


def parse_flag(value: Any, default: bool) -> bool:
    """Read a yes/no cell; blank or unrecognized values fall back to the default."""
    if isinstance(value, bool):
        return value
    normalized = _text(value).lower()
    if normalized in TRUE_SPELLINGS:
        return True
    if normalized in FALSE_SPELLINGS:
        return False
    return default


class TransactionValidator:
    """
    Validates candidate import rows through a two-stage pipeline.

    Stage 1: Schema validation (rejects the row)
    Stage 2: Semantic validation (warnings only)
    """

    def __init__(
        self,
        default_person: Optional[str] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize validator.

        Args:
            default_person: Person used for rows without one.
                            If None, a missing person is an error.
            settings: Thresholds for stage 2. Defaults to app settings.
        """
        self._settings = settings or get_settings().app
        self._default_person = default_person or self._settings.default_person

    def _validate_schema(
        self,
        row: Mapping[str, Any],
        row_number: int,
    ) -> tuple[Optional[TransactionCreate], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (transaction_or_none, list_of_issues)
        """
        issues = []

        def error(field: str, issue_type: str, message: str, fix: Optional[str] = None):
            issues.append(ValidationIssue(
                row=row_number,
                field=field,
                issue_type=issue_type,
                message=message,
                severity="error",
                suggested_fix=fix,
            ))

        description = _text(row.get("description"))
        if not description:
            error("description", "missing", f"Row {row_number}: description is required")

        amount = None
        raw_amount = row.get("amount")
        if _text(raw_amount) == "":
            error("amount", "missing", f"Row {row_number}: amount is required")
        else:
            amount = parse_brl_amount(raw_amount)
            if amount is None:
                error(
                    "amount", "invalid_value",
                    f"Row {row_number}: amount '{_text(raw_amount)}' is not a number",
                    "Use a value like 1.234,56 or 1234.56",
                )
            elif amount < 0:
                error(
                    "amount", "invalid_value",
                    f"Row {row_number}: amount cannot be negative",
                    "Record refunds as income instead",
                )
                amount = None
            else:
                try:
                    amount = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
                except InvalidOperation:
                    error(
                        "amount", "invalid_value",
                        f"Row {row_number}: amount '{_text(raw_amount)}' is too large",
                        "Check the value for extra digits",
                    )
                    amount = None

        tx_date = None
        raw_date = row.get("date")
        if _text(raw_date) == "":
            error("date", "missing", f"Row {row_number}: date is required")
        else:
            try:
                tx_date = parse_import_date(raw_date)
            except ValueError:
                error(
                    "date", "invalid_value",
                    f"Row {row_number}: date '{_text(raw_date)}' is not valid",
                    "Use DD/MM/YYYY or YYYY-MM-DD",
                )

        raw_type = _text(row.get("type")).lower()
        tx_type: Optional[TransactionType] = TransactionType.EXPENSE
        if raw_type:
            tx_type = TYPE_SPELLINGS.get(raw_type)
            if tx_type is None:
                error(
                    "type", "invalid_value",
                    f"Row {row_number}: unknown type '{raw_type}'",
                    "Use 'despesa' or 'receita'",
                )

        person = _text(row.get("person")) or self._default_person
        if not person:
            error("person", "missing", f"Row {row_number}: person is required")

        if issues:
            return None, issues

        payment_method = None
        raw_method = _text(row.get("payment_method")).lower()
        if raw_method:
            try:
                payment_method = PaymentMethod(raw_method)
            except ValueError:
                issues.append(ValidationIssue(
                    row=row_number,
                    field="payment_method",
                    issue_type="invalid_value",
                    message=f"Row {row_number}: unknown payment method '{raw_method}' was ignored",
                    severity="warning",
                ))

        try:
            transaction = TransactionCreate(
                type=tx_type,
                category=_text(row.get("category")),
                description=description,
                tag=_text(row.get("tag")) or None,
                amount=amount,
                person=person,
                date=tx_date,
                recurrence=RecurrenceType.from_storage(_text(row.get("recurrence")).lower() or None),
                include_in_split=parse_flag(
                    row.get("include_in_split"),
                    default=tx_type == TransactionType.EXPENSE,
                ),
                payment_method=payment_method,
            )
        except ValidationError as e:
            for err in e.errors():
                field = str(err["loc"][0]) if err["loc"] else "row"
                error(field, "invalid_value", f"Row {row_number}: {field}: {err['msg']}")
            return None, issues

        return transaction, issues

    def _validate_semantic(
        self,
        transaction: TransactionCreate,
        row_number: int,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Every issue here is a warning.
        """
        issues = []
        today = date.today()

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.date > max_future_date:
            issues.append(ValidationIssue(
                row=row_number,
                field="date",
                issue_type="future_date",
                message=f"Row {row_number}: date ({transaction.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if transaction.amount > max_amount:
            issues.append(ValidationIssue(
                row=row_number,
                field="amount",
                issue_type="suspicious_value",
                message=f"Row {row_number}: amount (R$ {transaction.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if transaction.amount == 0:
            issues.append(ValidationIssue(
                row=row_number,
                field="amount",
                issue_type="zero_amount",
                message=f"Row {row_number}: amount is zero",
                severity="warning",
            ))

        return issues

    def validate_row(self, row: Mapping[str, Any], row_number: int) -> RowValidation:
        """
        Run both stages on one candidate row.

        Stage 2 only runs when stage 1 produced a transaction.
        """
        canonical = canonical_row(row)
        transaction, issues = self._validate_schema(canonical, row_number)
        if transaction is not None:
            issues.extend(self._validate_semantic(transaction, row_number))
        return RowValidation(row=row_number, transaction=transaction, issues=issues)

    def validate_rows(self, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        """
        Validate a batch. Rows are numbered from 1; completely blank rows
        are skipped without counting as rejected.
        """
        result = ImportResult()
        for row_number, row in enumerate(rows, start=1):
            if not any(_text(value) for value in row.values()):
                continue
            validation = self.validate_row(row, row_number)
            result.issues.extend(validation.issues)
            if validation.is_valid:
                result.transactions.append(validation.transaction)
            else:
                result.rejected_rows.append(row_number)
        return result

    def get_user_friendly_summary(self, result: ImportResult) -> str:
        """
        Generate a user-friendly summary of an import.

        This is what we show to the couple after pasting a table.
        """
        if not result.issues:
            return f"✅ {result.imported_count} transaction(s) ready to import."

        lines = []

        if result.rejected_rows:
            lines.append(f"❌ {result.rejected_count} row(s) could not be imported:")
            for issue in result.errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for issue in result.warnings:
                lines.append(f"   • {issue.message}")

        lines.append("")
        lines.append(f"{result.imported_count} transaction(s) will be imported.")

        return "\n".join(lines)
