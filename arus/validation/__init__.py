"""Allocation plan validation package."""

from arus.validation.validator import AllocationPlanValidator

__all__ = ["AllocationPlanValidator"]
