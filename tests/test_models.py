"""
Tests for Couple Finance models

Test strategy:
1. Unit tests for individual components (models, engine, validator)
2. Integration tests for flows (with in-memory or mocked storage)
3. No real API calls in tests (use mocks)
"""

import json
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

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
from couple_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from couple_finance.models.validation import ImportResult, RowValidation, ValidationIssue


class TestCategoryKeys:
    """Tests for category key normalization."""

    def test_accents_and_case_are_removed(self):
        """Test that 'Alimentação' becomes 'alimentacao'."""
        assert normalize_category_key("Alimentação", TransactionType.EXPENSE) == "alimentacao"

    def test_expense_alias(self):
        """Test that 'pets' maps to 'pet' for expenses."""
        assert normalize_category_key("Pets", TransactionType.EXPENSE) == "pet"

    def test_income_alias(self):
        """Test that 'freelance' maps to 'bonus' for income only."""
        assert normalize_category_key("freelance", TransactionType.INCOME) == "bonus"
        assert normalize_category_key("freelance", TransactionType.EXPENSE) == "freelance"

    def test_empty_falls_back(self):
        """Test that blank categories fall back to 'outros'."""
        assert normalize_category_key("", TransactionType.EXPENSE) == FALLBACK_CATEGORY
        assert normalize_category_key("   ", TransactionType.INCOME) == FALLBACK_CATEGORY


class TestLocalDates:
    """Tests for civil date parsing."""

    def test_iso_string(self):
        assert parse_local_date("2024-07-10") == date(2024, 7, 10)

    def test_time_part_is_ignored(self):
        """Test that a UTC timestamp keeps its calendar day."""
        assert parse_local_date("2024-07-10T00:00:00.000Z") == date(2024, 7, 10)
        assert parse_local_date("2024-07-31 23:59:59") == date(2024, 7, 31)

    def test_datetime_is_truncated(self):
        assert parse_local_date(datetime(2024, 7, 10, 23, 30)) == date(2024, 7, 10)

    def test_invalid_dates_rejected(self):
        with pytest.raises(ValueError):
            parse_local_date("10/07/2024")
        with pytest.raises(ValueError):
            parse_local_date("2024-02-30")
        with pytest.raises(ValueError):
            parse_local_date(20240710)


class TestTransactionModels:
    """Tests for transaction Pydantic models."""

    def test_expense_creation(self):
        """Test TransactionCreate model creation."""
        tx = TransactionCreate(
            type=TransactionType.EXPENSE,
            category="Alimentação",
            description="  Mercado  ",
            amount=Decimal("250.40"),
            person="Ana",
            date="2024-07-10",
            include_in_split=True,
            payment_method=PaymentMethod.PIX,
        )
        assert tx.category == "alimentacao"
        assert tx.description == "Mercado"
        assert tx.date == date(2024, 7, 10)
        assert tx.is_shared_expense

    def test_income_never_joins_the_split(self):
        """Test that include_in_split and tag are dropped for income."""
        tx = TransactionCreate(
            type="income",
            category="Salário",
            description="Salário julho",
            tag="ignored",
            amount=Decimal("5000"),
            person="Ana",
            date=date(2024, 7, 5),
            include_in_split=True,
        )
        assert tx.category == "salario"
        assert tx.include_in_split is False
        assert tx.tag is None
        assert not tx.is_shared_expense

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            TransactionCreate(
                type="expense",
                description="Test",
                amount=Decimal("-1"),
                person="Ana",
                date="2024-07-10",
            )

    def test_rejects_empty_description(self):
        with pytest.raises(ValidationError):
            TransactionCreate(
                type="expense",
                description="   ",
                amount=Decimal("10"),
                person="Ana",
                date="2024-07-10",
            )

    def test_records_are_frozen(self):
        tx = TransactionCreate(
            type="expense",
            description="Uber",
            amount=Decimal("30"),
            person="Ana",
            date="2024-07-10",
        )
        with pytest.raises(ValidationError):
            tx.amount = Decimal("40")

    def test_from_create_keeps_fields(self):
        data = TransactionCreate(
            type="expense",
            category="transporte",
            description="Uber",
            amount=Decimal("30"),
            person="Ana",
            date="2024-07-10",
        )
        transaction_id = uuid4()
        tx = Transaction.from_create(transaction_id, data)
        assert tx.id == transaction_id
        assert tx.description == "Uber"
        assert tx.category == "transporte"

    def test_replace_keeps_id_and_revalidates(self):
        """Test whole-record update through replace()."""
        tx = Transaction(
            type="expense",
            description="Uber",
            amount=Decimal("30"),
            person="Ana",
            date="2024-07-10",
        )
        updated = tx.replace(id=uuid4(), amount=Decimal("45"), category="Pets")
        assert updated.id == tx.id
        assert updated.amount == Decimal("45")
        assert updated.category == "pet"

        with pytest.raises(ValidationError):
            tx.replace(amount=Decimal("-5"))

    def test_to_log_dict(self):
        tx = Transaction(
            type="expense",
            description="Uber",
            amount=Decimal("30"),
            person="Ana",
            date="2024-07-10",
        )
        log_dict = tx.to_log_dict()
        assert log_dict["id"] == str(tx.id)
        assert log_dict["amount"] == "30"
        assert log_dict["date"] == "2024-07-10"


class TestRecurrence:
    """Tests for recurrence storage mapping."""

    def test_to_storage(self):
        assert RecurrenceType.RECURRING.to_storage() == "monthly"
        assert RecurrenceType.ONE_TIME.to_storage() == "once"

    def test_from_storage(self):
        assert RecurrenceType.from_storage("monthly") == RecurrenceType.RECURRING
        assert RecurrenceType.from_storage("weekly") == RecurrenceType.RECURRING
        assert RecurrenceType.from_storage("once") == RecurrenceType.ONE_TIME
        assert RecurrenceType.from_storage(None) == RecurrenceType.ONE_TIME


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Transaction added",
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_sheets_row(self):
        """Test AuditEvent to Google Sheets row conversion."""
        event = AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            description="Imported 2 transactions",
            details={"imported_count": 2},
        )
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[0] == str(event.event_id)
        assert row[2] == "import_completed"
        assert json.loads(row[8]) == {"imported_count": 2}
        assert row[10] == "False"

    def test_builder_transaction_created(self):
        transaction_id = uuid4()
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            description="Mercado",
            amount="250.40",
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == transaction_id
        assert event.details["amount"] == "250.40"
        assert event.is_user_action

    def test_builder_storage_fetch_failed(self):
        event = AuditEventBuilder.storage_fetch_failed("timeout")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "timeout"


class TestValidationModels:
    """Tests for import validation result models."""

    def test_row_with_error_is_invalid(self):
        issue = ValidationIssue(
            row=1,
            field="amount",
            issue_type="missing",
            message="Row 1: amount is required",
            severity="error",
        )
        result = RowValidation(row=1, issues=[issue])
        assert not result.is_valid

    def test_import_result_counts(self):
        warning = ValidationIssue(
            row=2,
            field="amount",
            issue_type="zero_amount",
            message="Row 2: amount is zero",
            severity="warning",
        )
        result = ImportResult(issues=[warning], rejected_rows=[3])
        assert result.imported_count == 0
        assert result.rejected_count == 1
        assert result.warnings == [warning]
        assert result.errors == []
