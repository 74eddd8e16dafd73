"""Validation package."""

from budgetforge.validation.validator import RecordValidator

__all__ = ["RecordValidator"]
