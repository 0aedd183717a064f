"""
Shared pytest fixtures.

Every fixture builds fresh in-memory data; no test touches the network
or the user's real data directory.
"""

from decimal import Decimal
from pathlib import Path

import pytest

from wealthwise.config import AppSettings
from wealthwise.ledger import LedgerEngine
from wealthwise.models.ledger import (
    Account,
    AccountGroups,
    AccountKind,
    FinancialData,
)


@pytest.fixture
def data() -> FinancialData:
    """Cash 1000, Savings 500 (assets) and CreditCard 0 (liability)."""
    return FinancialData(
        accounts=AccountGroups(
            assets=[
                Account(id="cash", kind=AccountKind.ASSET, name="Cash", category="cash", balance=Decimal("1000")),
                Account(id="savings", kind=AccountKind.ASSET, name="Savings", category="cash", balance=Decimal("500")),
            ],
            liabilities=[
                Account(id="card", kind=AccountKind.LIABILITY, name="CreditCard", category="credit_card", balance=Decimal("0")),
            ],
        ),
    )


@pytest.fixture
def opening(data: FinancialData) -> dict[str, Decimal]:
    """Balances of the data fixture before any transaction."""
    return {
        account.id: account.balance
        for account in data.accounts.assets + data.accounts.liabilities
    }


@pytest.fixture
def engine(data: FinancialData) -> LedgerEngine:
    return LedgerEngine(data)


@pytest.fixture
def app_settings(tmp_path: Path) -> AppSettings:
    """Settings pointing every file at a temporary directory."""
    return AppSettings(
        data_dir=tmp_path / "data",
        export_dir=tmp_path / "exports",
    )
