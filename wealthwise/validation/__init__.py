"""Validation package."""

from wealthwise.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
