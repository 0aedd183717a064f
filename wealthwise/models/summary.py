"""
Summary and Market Data Models

FinancialSummary is the deterministic snapshot handed to the AI advisor.
PriceQuote is what a market data lookup may return; it is only ever
used to pre-fill account fields, never to change balances.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CategoryTotal(BaseModel):
    """Total spent in one category."""
    
    category: str
    total: Decimal
    count: int = Field(ge=0)


class FinancialSummary(BaseModel):
    """
    Point-in-time snapshot of the user's finances.
    
    CRITICAL: Every figure here is computed from stored data.
    The advisor only formats and interprets it.
    """
    
    as_of: date
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    
    # Cash flow of the calendar month / year containing as_of
    month_income: Decimal
    month_expenses: Decimal
    year_income: Decimal
    year_expenses: Decimal
    
    # Whole history
    total_income: Decimal
    total_expenses: Decimal
    
    expense_by_category: list[CategoryTotal] = Field(default_factory=list)
    
    transaction_count: int = Field(ge=0)
    active_rule_count: int = Field(ge=0)
    
    @property
    def month_net(self) -> Decimal:
        return self.month_income - self.month_expenses
    
    @property
    def savings_rate(self) -> Optional[Decimal]:
        """Share of this month's income that was not spent."""
        if self.month_income <= 0:
            return None
        return self.month_net / self.month_income


class PriceQuote(BaseModel):
    """Result of a stock price lookup."""
    
    symbol: str
    price: Decimal = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)
    name: Optional[str] = None
    estimated_fx_rate: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Quote currency -> base currency rate, if the provider gave one"
    )
    fetched_at: datetime = Field(default_factory=datetime.utcnow)
