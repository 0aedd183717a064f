"""
WealthWise - Source Package

A personal finance tracker for a single user on a single device:
transactions, assets, liabilities, recurring payments and an AI advisor.

DESIGN PRINCIPLES:
1. Balances are always derivable by replaying the stored transactions
2. Recurring occurrences are materialized exactly once
3. Every edit is an exact revert followed by a reapply
4. Validate before mutating - never leave a half-applied change
5. External services (AI, market data) never touch the ledger
"""

__version__ = "1.0.0"
__author__ = "WealthWise Team"
