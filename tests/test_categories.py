"""Tests for category labels and thresholds."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from couple_finance.categories import (
    DEFAULT_THRESHOLD,
    CategoryConfig,
    CategoryThreshold,
)
from couple_finance.models.analytics import CategoryStatus
from couple_finance.models.transaction import TransactionType


class TestCategoryThreshold:
    """Tests for threshold classification."""

    def test_status_boundaries(self):
        """Reaching a cutoff counts as that level."""
        threshold = CategoryThreshold(medium=Decimal("20"), high=Decimal("30"))
        assert threshold.status_for(Decimal("19.99")) == CategoryStatus.LOW
        assert threshold.status_for(Decimal("20")) == CategoryStatus.MEDIUM
        assert threshold.status_for(Decimal("30")) == CategoryStatus.HIGH

    def test_status_is_monotonic(self):
        """Increasing percentage never moves status backward."""
        order = [CategoryStatus.LOW, CategoryStatus.MEDIUM, CategoryStatus.HIGH]
        threshold = CategoryThreshold(medium=Decimal("8"), high=Decimal("12"))
        previous = CategoryStatus.LOW
        for tenth in range(0, 300):
            status = threshold.status_for(Decimal(tenth) / 10)
            assert order.index(status) >= order.index(previous)
            previous = status

    def test_high_below_medium_rejected(self):
        with pytest.raises(ValidationError):
            CategoryThreshold(medium=Decimal("10"), high=Decimal("5"))

    def test_zero_threshold_rejected(self):
        with pytest.raises(ValidationError):
            CategoryThreshold(medium=Decimal("0"), high=Decimal("5"))


class TestCategoryConfig:
    """Tests for the merged category configuration."""

    def test_builtin_labels(self):
        config = CategoryConfig.default()
        assert config.expense_label("alimentacao") == "Alimentação"
        assert config.income_label("salario") == "Salário"
        assert config.label_for("outros", TransactionType.INCOME) == "Outros"

    def test_unknown_category_falls_back(self):
        """Unknown keys use the raw key as label and the default threshold."""
        config = CategoryConfig.default()
        assert config.expense_label("viagem") == "viagem"
        assert config.threshold_for("viagem") == DEFAULT_THRESHOLD

    def test_builtin_threshold(self):
        config = CategoryConfig.default()
        assert config.status_for("moradia", Decimal("35")) == CategoryStatus.MEDIUM
        assert config.status_for("moradia", Decimal("40")) == CategoryStatus.HIGH

    def test_custom_expense_category_returns_new_config(self):
        """Adding a category never mutates the original config."""
        config = CategoryConfig.default()
        custom = config.with_expense_category(
            "Viagem",
            "Viagem",
            CategoryThreshold(medium=Decimal("5"), high=Decimal("10")),
        )
        assert custom.expense_label("viagem") == "Viagem"
        assert custom.status_for("viagem", Decimal("6")) == CategoryStatus.MEDIUM
        assert config.expense_label("viagem") == "viagem"

    def test_custom_income_category(self):
        config = CategoryConfig.default().with_income_category("Aluguel Recebido", "Aluguel")
        assert config.income_label("aluguel_recebido") == "Aluguel"
