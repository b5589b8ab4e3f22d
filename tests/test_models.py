"""
Tests for the Arus data models

Test strategy:
1. Unit tests for the value types (Money, Period, rules)
2. Category credit/debit guards
3. Serialization of the User aggregate and statement lines
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from arus.errors import InsufficientFundsError, PercentageOverflowError
from arus.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from arus.models.ledger import (
    STARTER_ACCOUNTS,
    AllocationKind,
    AllocationRule,
    BankAccount,
    Category,
    CategoryKind,
    Period,
    Statement,
    Transaction,
    User,
)
from arus.models.money import CurrencyMismatchError, Money, sum_money


def usd(value) -> Money:
    return Money.of(value, "USD")


class TestMoney:
    """Tests for the Money value type."""

    def test_add_and_subtract(self):
        """Test basic arithmetic keeps the currency."""
        total = usd(100) + usd("0.50")
        assert total.amount == Decimal("100.50")
        assert total.currency == "USD"
        assert (total - usd(40)).amount == Decimal("60.50")

    def test_subtract_can_go_negative(self):
        """Test subtraction is not clamped at zero."""
        result = usd(10).subtract(usd(25))
        assert result.amount == Decimal("-15")
        assert result.is_negative()

    def test_float_input_is_exact(self):
        """Test floats are converted through their string form."""
        assert Money.of(0.1, "USD").amount == Decimal("0.1")

    def test_repeated_credits_do_not_drift(self):
        """Test ten additions of 0.10 give exactly 1.00."""
        total = Money.zero("USD")
        for _ in range(10):
            total = total.add(usd("0.10"))
        assert total.amount == Decimal("1")

    def test_is_zero(self):
        assert Money.zero("USD").is_zero()
        assert not usd("0.01").is_zero()

    def test_currency_is_uppercased(self):
        assert Money.of(1, "usd").currency == "USD"

    def test_currency_mismatch_raises(self):
        """Test that mixing currencies is an error, not a silent conversion."""
        with pytest.raises(CurrencyMismatchError, match="USD vs EUR"):
            usd(1).add(Money.of(1, "EUR"))
        with pytest.raises(CurrencyMismatchError):
            usd(1) < Money.of(1, "EUR")

    def test_comparisons(self):
        assert usd(5) < usd(6)
        assert usd(6) >= usd(6)
        assert usd(7) > usd("6.99")

    def test_multiply(self):
        assert usd(1000).multiply(Decimal("0.3")).amount == Decimal("300")

    def test_quantize_and_str(self):
        """Test display rounding uses banker's rounding to cents."""
        assert usd("2.345").quantize().amount == Decimal("2.34")
        assert str(usd(5)) == "5.00 USD"

    def test_money_is_immutable(self):
        with pytest.raises(ValueError):
            usd(1).amount = Decimal("2")

    def test_sum_money_empty(self):
        assert sum_money([], "USD") == Money.zero("USD")


class TestCategory:
    """Tests for category credit and debit."""

    def _category(self, balance) -> Category:
        return Category(
            kind=CategoryKind.EXPENSE,
            balance=usd(balance),
            bank_account=STARTER_ACCOUNTS[CategoryKind.EXPENSE],
        )

    def test_credit(self):
        category = self._category(0)
        category.credit(usd(250))
        assert category.balance.amount == Decimal("250")

    def test_debit_exact_balance(self):
        """Test a category can be debited down to exactly zero."""
        category = self._category(100)
        category.debit(usd(100))
        assert category.balance.is_zero()

    def test_debit_insufficient_funds(self):
        """Test debit larger than balance fails and names the category."""
        category = self._category(50)
        with pytest.raises(InsufficientFundsError, match="Expense") as exc_info:
            category.debit(usd(51))
        assert exc_info.value.category == CategoryKind.EXPENSE
        assert category.balance.amount == Decimal("50")


class TestAllocationRule:
    """Tests for allocation rule validation."""

    def test_percentage_rule(self):
        rule = AllocationRule.percent(CategoryKind.SAVINGS, 0.2)
        assert rule.kind == AllocationKind.PERCENTAGE
        assert rule.percentage == Decimal("0.2")
        assert rule.amount is None

    def test_fixed_rule(self):
        rule = AllocationRule.fixed(CategoryKind.EMERGENCY, usd(150))
        assert rule.kind == AllocationKind.FIXED_AMOUNT
        assert rule.amount.amount == Decimal("150")

    def test_percentage_above_one_rejected(self):
        with pytest.raises(ValueError):
            AllocationRule.percent(CategoryKind.EXPENSE, "1.01")

    def test_fixed_rule_requires_amount(self):
        with pytest.raises(ValueError, match="requires an amount"):
            AllocationRule(category=CategoryKind.EXPENSE, kind=AllocationKind.FIXED_AMOUNT)

    def test_fixed_rule_rejects_negative_amount(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            AllocationRule.fixed(CategoryKind.EXPENSE, usd(-1))

    def test_percentage_rule_cannot_have_amount(self):
        with pytest.raises(ValueError, match="cannot have an amount"):
            AllocationRule(
                category=CategoryKind.EXPENSE,
                kind=AllocationKind.PERCENTAGE,
                percentage=Decimal("0.5"),
                amount=usd(10),
            )


class TestPeriod:
    """Tests for the inclusive period."""

    def test_contains_both_ends(self):
        start = datetime(2023, 9, 1, tzinfo=timezone.utc)
        end = datetime(2023, 9, 30, tzinfo=timezone.utc)
        period = Period(start_date=start, end_date=end)
        assert period.contains(start)
        assert period.contains(end)
        assert not period.contains(datetime(2023, 8, 31, 23, 59, tzinfo=timezone.utc))
        assert not period.contains(datetime(2023, 9, 30, 0, 0, 1, tzinfo=timezone.utc))

    def test_naive_datetimes_are_utc(self):
        period = Period(start_date=datetime(2023, 9, 1), end_date=datetime(2023, 9, 2))
        assert period.contains(datetime(2023, 9, 1, 12, tzinfo=timezone.utc))
        assert period.contains(datetime(2023, 9, 1, 12))

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="Period end cannot be before start"):
            Period(start_date=datetime(2023, 9, 2), end_date=datetime(2023, 9, 1))

    def test_for_month(self):
        """Test the month period covers the whole last day."""
        period = Period.for_month(2024, 2)
        assert period.start_date == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert period.contains(datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc))
        assert not period.contains(datetime(2024, 3, 1, tzinfo=timezone.utc))


class TestUser:
    """Tests for the User aggregate."""

    def test_new_user_has_starter_categories(self):
        user = User.new("user123")
        assert list(user.categories) == [
            CategoryKind.EXPENSE,
            CategoryKind.EMERGENCY,
            CategoryKind.SAVINGS,
        ]
        for kind, category in user.categories.items():
            assert category.balance == Money.zero("USD")
            assert category.bank_account == STARTER_ACCOUNTS[kind]
        assert user.allocation_rules == []
        assert user.incomes == []
        assert user.expenses == []

    def test_new_user_currency(self):
        user = User.new("u", currency="EUR")
        assert user.currency == "EUR"
        assert user.total_balance() == Money.zero("EUR")

    def test_serializes_with_stable_field_names(self):
        """Test the JSON form of a user and that it reads back."""
        user = User.new("user123")
        user.categories[CategoryKind.EXPENSE].credit(usd(500))
        user.allocation_rules.append(AllocationRule.percent(CategoryKind.EXPENSE, "0.5"))
        user.incomes.append(Transaction(
            amount=usd(1000),
            date=datetime(2023, 9, 1, tzinfo=timezone.utc),
            description="September Salary",
        ))

        data = json.loads(user.model_dump_json())
        assert set(data) == {"id", "categories", "allocation_rules", "incomes", "expenses"}
        assert set(data["categories"]) == {"expense", "emergency", "savings"}
        assert set(data["categories"]["expense"]) == {"kind", "balance", "bank_account"}
        assert data["categories"]["expense"]["bank_account"] == {
            "account_number": "EXP123",
            "bank_name": "Expense Bank",
        }
        assert data["incomes"][0]["description"] == "September Salary"

        restored = User.model_validate_json(user.model_dump_json())
        assert restored.categories[CategoryKind.EXPENSE].balance.amount == Decimal("500")
        assert restored.allocation_rules == user.allocation_rules
        assert restored.incomes[0].date == user.incomes[0].date


class TestStatement:
    """Tests for bank statement lines."""

    def test_empty_fields_are_omitted(self):
        assert json.loads(Statement(id="st-1").to_json()) == {"id": "st-1"}
        assert Statement().to_json() == "{}"

    def test_all_fields_present(self):
        line = Statement(id="st-1", bank_id="bank-9", amount=12050)
        assert json.loads(line.to_json()) == {"id": "st-1", "bank_id": "bank-9", "amount": 12050}


class TestBankAccount:
    def test_strips_whitespace(self):
        account = BankAccount(account_number=" EXP123 ", bank_name="Expense Bank ")
        assert account == STARTER_ACCOUNTS[CategoryKind.EXPENSE]


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.USER_CREATED,
            description="User created",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        event = AuditEventBuilder.income_allocated(
            user_id="user123",
            amount="1000.00 USD",
            allocations={"expense": "500.00 USD"},
            correlation_id=None,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "income_allocated"
        assert log_dict["user_id"] == "user123"
        assert log_dict["details"]["allocations"]["expense"] == "500.00 USD"
        assert log_dict["correlation_id"] is None

    def test_operation_rejected_carries_error(self):
        """Test a ledger error becomes a warning event with its details."""
        error = PercentageOverflowError(Decimal("1.1"))
        event = AuditEventBuilder.operation_rejected(
            event_type=AuditEventType.INCOME_REJECTED,
            user_id="user123",
            error=error,
            correlation_id=None,
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "percentage_overflow"
        assert event.details == {"total_percentage": "1.1"}
        assert event.description.startswith("Income rejected")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
