"""
Tests for allocation plan validation
"""

import pytest

from arus.models.ledger import AllocationRule, CategoryKind, User
from arus.models.money import Money
from arus.validation import AllocationPlanValidator

EXPENSE = CategoryKind.EXPENSE
EMERGENCY = CategoryKind.EMERGENCY
SAVINGS = CategoryKind.SAVINGS


def usd(value) -> Money:
    return Money.of(value, "USD")


def issue_types(result) -> list[str]:
    return [issue.issue_type for issue in result.issues]


@pytest.fixture
def validator() -> AllocationPlanValidator:
    return AllocationPlanValidator()


@pytest.fixture
def user() -> User:
    return User.new("user123")


class TestStructureValidation:
    """Stage 1 checks."""

    def test_full_percentage_plan_is_clean(self, validator, user):
        result = validator.validate(user, [
            AllocationRule.percent(EXPENSE, "0.5"),
            AllocationRule.percent(EMERGENCY, "0.3"),
            AllocationRule.percent(SAVINGS, "0.2"),
        ])
        assert result.is_valid
        assert result.issues == []

    def test_empty_plan(self, validator, user):
        result = validator.validate(user, [])
        assert not result.structure_valid
        assert not result.semantic_valid
        assert issue_types(result) == ["empty_plan"]

    def test_unknown_category_points_at_rule(self, validator, user):
        del user.categories[SAVINGS]
        result = validator.validate(user, [
            AllocationRule.percent(EXPENSE, "0.5"),
            AllocationRule.percent(SAVINGS, "0.5"),
        ])
        assert result.has_errors
        issue = result.issues[0]
        assert issue.issue_type == "unknown_category"
        assert issue.field == "rules[1]"
        assert "Savings" in issue.message

    def test_fixed_amount_in_other_currency(self, validator, user):
        result = validator.validate(user, [
            AllocationRule.fixed(EXPENSE, Money.of(100, "EUR")),
        ])
        assert "currency_mismatch" in issue_types(result)
        assert not result.is_valid

    def test_duplicate_category_is_a_warning(self, validator, user):
        """Test two rules for one category are allowed but flagged."""
        result = validator.validate(user, [
            AllocationRule.percent(EXPENSE, "0.5"),
            AllocationRule.percent(EXPENSE, "0.5"),
        ])
        assert result.is_valid
        assert [w.issue_type for w in result.warnings] == ["duplicate_category"]

    def test_semantic_stage_skipped_on_structure_errors(self, validator, user):
        del user.categories[SAVINGS]
        result = validator.validate(user, [
            AllocationRule.percent(EXPENSE, "0.8"),
            AllocationRule.percent(SAVINGS, "0.8"),
        ])
        assert "percentage_overflow" not in issue_types(result)


class TestSemanticValidation:
    """Stage 2 checks."""

    def test_percentage_overflow(self, validator, user):
        result = validator.validate(user, [
            AllocationRule.percent(EXPENSE, "0.6"),
            AllocationRule.percent(SAVINGS, "0.5"),
        ])
        assert result.structure_valid
        assert not result.semantic_valid
        assert issue_types(result) == ["percentage_overflow"]
        assert "110" in result.issues[0].message

    def test_fixed_exceeds_expected_income(self, validator, user):
        result = validator.validate(
            user,
            [AllocationRule.fixed(EXPENSE, usd(1200))],
            expected_income=usd(1000),
        )
        assert "allocation_exceeds_income" in issue_types(result)
        assert result.error_count == 1

    def test_fixed_within_expected_income(self, validator, user):
        result = validator.validate(
            user,
            [
                AllocationRule.fixed(SAVINGS, usd(200)),
                AllocationRule.percent(EXPENSE, "1"),
            ],
            expected_income=usd(1000),
        )
        assert result.is_valid
        assert result.issues == []

    def test_unallocated_income_is_info(self, validator, user):
        """Test a plan under 100% is valid and reported as info only."""
        result = validator.validate(user, [AllocationRule.percent(EXPENSE, "0.5")])
        assert result.is_valid
        assert result.warnings == []
        assert result.issues[0].issue_type == "unallocated_income"
        assert result.issues[0].severity == "info"


class TestSummary:
    """Tests for the user-facing summary text."""

    def test_clean_plan(self, validator, user):
        result = validator.validate(user, [AllocationRule.percent(EXPENSE, "0.5")])
        assert validator.get_user_friendly_summary(result) == "The allocation plan looks good."

    def test_rejected_plan_lists_problems(self, validator, user):
        result = validator.validate(user, [
            AllocationRule.percent(EXPENSE, "0.6"),
            AllocationRule.percent(SAVINGS, "0.5"),
        ])
        summary = validator.get_user_friendly_summary(result)
        assert summary.startswith("The allocation plan has 1 problem(s):")
        assert "Lower the percentages" in summary

    def test_warning_summary(self, validator, user):
        result = validator.validate(user, [
            AllocationRule.percent(EXPENSE, "0.5"),
            AllocationRule.percent(EXPENSE, "0.5"),
        ])
        summary = validator.get_user_friendly_summary(result)
        assert summary.startswith("The allocation plan can be used, but please check:")
        assert "2 rules credit the Expense category" in summary
