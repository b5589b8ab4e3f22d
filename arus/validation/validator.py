"""
Two-Stage Allocation Plan Validation

DESIGN DECISION: An allocation plan is checked when it is set, not
only when income arrives. Problems that do not depend on the income
amount (a rule for a missing category, percentages over 100%) are
reported to the user straight away.

STAGE 1 - STRUCTURE:
- Plan is not empty
- Every rule names a category the user has
- Fixed amounts are in the user's currency
- Duplicate rules for one category (allowed, but usually a mistake)

STAGE 2 - SEMANTICS:
- Percentages add up to at most 100%
- Fixed amounts fit inside the expected income, when one is given
- Part of the income would be left unallocated

IMPORTANT: Validation NEVER silently fixes a plan.
It reports issues for the user to act on.
"""

from collections import Counter
from decimal import Decimal
from typing import Optional

from arus.ledger.allocation import total_fixed, total_percentage
from arus.models.ledger import AllocationKind, AllocationRule, User
from arus.models.money import Money
from arus.models.validation import ValidationIssue, ValidationResult


class AllocationPlanValidator:
    """
    Validates an allocation plan against a user's categories.

    Stage 2 is skipped when stage 1 finds errors, since totals of a
    structurally broken plan mean nothing.
    """

    def _validate_structure(
        self,
        user: User,
        rules: list[AllocationRule],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if not rules:
            issues.append(ValidationIssue(
                field="rules",
                issue_type="empty_plan",
                message="The allocation plan has no rules, so income cannot be allocated",
                severity="error",
                suggested_fix="Add at least one fixed or percentage rule",
            ))

        for index, rule in enumerate(rules):
            if user.category(rule.category) is None:
                issues.append(ValidationIssue(
                    field=f"rules[{index}]",
                    issue_type="unknown_category",
                    message=f"Category {rule.category.label} does not exist",
                    severity="error",
                ))
            if (
                rule.kind == AllocationKind.FIXED_AMOUNT
                and rule.amount.currency != user.currency
            ):
                issues.append(ValidationIssue(
                    field=f"rules[{index}]",
                    issue_type="currency_mismatch",
                    message=(
                        f"Fixed amount is in {rule.amount.currency} "
                        f"but the ledger is in {user.currency}"
                    ),
                    severity="error",
                ))

        counts = Counter(rule.category for rule in rules)
        for category, count in counts.items():
            if count > 1:
                issues.append(ValidationIssue(
                    field="rules",
                    issue_type="duplicate_category",
                    message=f"{count} rules credit the {category.label} category",
                    severity="warning",
                    suggested_fix="Merge them into one rule if that was not intended",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantics(
        self,
        user: User,
        rules: list[AllocationRule],
        expected_income: Optional[Money],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []
        percentage = total_percentage(rules)

        if percentage > 1:
            issues.append(ValidationIssue(
                field="rules",
                issue_type="percentage_overflow",
                message=f"Percentages add up to {percentage * 100}%, more than 100%",
                severity="error",
                suggested_fix="Lower the percentages so they add up to 100% or less",
            ))

        fixed = total_fixed(rules, user.currency)
        if expected_income is not None and fixed > expected_income:
            issues.append(ValidationIssue(
                field="rules",
                issue_type="allocation_exceeds_income",
                message=f"Fixed amounts ({fixed}) exceed the expected income ({expected_income})",
                severity="error",
            ))

        has_percentage_rules = any(r.kind == AllocationKind.PERCENTAGE for r in rules)
        if percentage < 1 and (has_percentage_rules or expected_income is not None):
            unallocated = (Decimal("1") - percentage) * 100
            issues.append(ValidationIssue(
                field="rules",
                issue_type="unallocated_income",
                message=f"{unallocated}% of the income left after fixed amounts is not allocated",
                severity="info",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        user: User,
        rules: list[AllocationRule],
        expected_income: Optional[Money] = None,
    ) -> ValidationResult:
        """
        Run both validation stages.

        Args:
            user: The user the plan is meant for
            rules: The proposed plan
            expected_income: Typical income, to check fixed amounts against

        Returns:
            ValidationResult with every issue found
        """
        structure_valid, issues = self._validate_structure(user, rules)

        if structure_valid:
            semantic_valid, semantic_issues = self._validate_semantics(
                user, rules, expected_income
            )
            issues.extend(semantic_issues)
        else:
            semantic_valid = False

        return ValidationResult(
            structure_valid=structure_valid,
            semantic_valid=semantic_valid,
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One paragraph describing the result, for the UI."""
        if result.is_valid and not result.warnings:
            return "The allocation plan looks good."

        lines = []
        if not result.is_valid:
            lines.append(f"The allocation plan has {result.error_count} problem(s):")
        else:
            lines.append("The allocation plan can be used, but please check:")
        for issue in result.issues:
            if issue.severity == "info":
                continue
            line = f"- {issue.message}"
            if issue.suggested_fix:
                line += f" ({issue.suggested_fix})"
            lines.append(line)
        return "\n".join(lines)
