"""
Validation Models

Results of checking an allocation plan before it is stored.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field or rule with the issue (e.g., 'rules[2]')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'unknown_category', 'percentage_overflow')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage plan validation.

    Stage 1: Structure (rules resolve, currencies match)
    Stage 2: Semantics (totals fit, nothing is left unallocated)
    """

    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)
    )

    structure_valid: bool = Field(
        ...,
        description="Did structural validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return self.structure_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]
