"""
Tests for the Gemini-backed agents.

No real API calls: the genai module is patched, and failures are
injected on _generate directly so the retry back-off never sleeps.
"""

import pytest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from wealthwise.activity import ActivityLogger
from wealthwise.agents import ADVISOR_FALLBACK, DEFAULT_ICONS, AdvisorAgent, MarketDataAgent
from wealthwise.config import GeminiSettings
from wealthwise.models.activity import ActivityEventType
from wealthwise.models.ledger import Account, AccountKind, Transaction, TransactionType
from wealthwise.models.summary import CategoryTotal, FinancialSummary


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key")


@pytest.fixture
def fake_model():
    """A GenerativeModel stand-in; set .reply to control the answer."""
    with patch("wealthwise.agents.ai_agents.genai") as genai:
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=SimpleNamespace(text=""))
        genai.GenerativeModel.return_value = model
        
        def reply(text):
            model.generate_content_async.return_value = SimpleNamespace(text=text)
        
        model.reply = reply
        yield model


@pytest.fixture
def summary():
    return FinancialSummary(
        as_of=date(2026, 10, 17),
        total_assets=Decimal("1500"),
        total_liabilities=Decimal("250"),
        net_worth=Decimal("1250"),
        month_income=Decimal("3000"),
        month_expenses=Decimal("1100"),
        year_income=Decimal("5800"),
        year_expenses=Decimal("1100"),
        total_income=Decimal("5800"),
        total_expenses=Decimal("1200"),
        expense_by_category=[CategoryTotal(category="housing", total=Decimal("900"), count=1)],
        transaction_count=8,
        active_rule_count=1,
    )


RECENT = [
    Transaction(
        date=date(2026, 10, 10),
        type=TransactionType.EXPENSE,
        amount=Decimal("900"),
        category="housing",
        note="Rent",
    )
]


class TestAdvisorAgent:
    """Tests for AdvisorAgent."""
    
    def test_prompt_contains_figures(self, gemini_settings, fake_model, summary):
        """Test the prompt carries the summary, breakdown and accounts."""
        agent = AdvisorAgent(gemini_settings)
        accounts = [
            Account(
                kind=AccountKind.ASSET,
                name="NVDA",
                category="investment",
                balance=Decimal("38400"),
                symbol="NVDA",
                shares=Decimal("10"),
                purchase_price=Decimal("100"),
                current_price=Decimal("120"),
            ),
            Account(kind=AccountKind.LIABILITY, name="Visa", category="credit_card", balance=Decimal("250")),
        ]
        
        prompt = agent.build_prompt(summary, RECENT, accounts=accounts)
        
        assert "Net worth: 1,250.00" in prompt
        assert "- housing: 900.00 (1 transactions)" in prompt
        assert "[2026-10-10] expense: 900.00 (housing) Rent" in prompt
        assert "NVDA unrealized gain: 200.00" in prompt
        assert "**Liabilities**" in prompt
        assert "3 concrete actions" in prompt
    
    def test_prompt_with_question(self, gemini_settings, fake_model, summary):
        """Test a user question replaces the default task."""
        prompt = AdvisorAgent(gemini_settings).build_prompt(summary, [], "Can I buy a car?")
        assert '**User question:** "Can I buy a car?"' in prompt
        assert "concrete actions" not in prompt
    
    @pytest.mark.asyncio
    async def test_analyze_returns_model_text(self, gemini_settings, fake_model, summary):
        """Test the model's answer is returned and logged."""
        fake_model.reply("  ## Healthy\nKeep going.  ")
        logger = ActivityLogger()
        agent = AdvisorAgent(gemini_settings, logger)
        
        answer = await agent.analyze(summary, RECENT)
        
        assert answer == "## Healthy\nKeep going."
        assert logger.recent_events[-1].event_type == ActivityEventType.ADVICE_GENERATED
    
    @pytest.mark.asyncio
    async def test_analyze_falls_back_on_error(self, gemini_settings, fake_model, summary):
        """Test a failing call becomes the fallback message."""
        logger = ActivityLogger()
        agent = AdvisorAgent(gemini_settings, logger)
        
        with patch.object(agent, "_generate", AsyncMock(side_effect=RuntimeError("quota"))):
            answer = await agent.analyze(summary, RECENT)
        
        assert answer == ADVISOR_FALLBACK
        assert logger.recent_events[-1].event_type == ActivityEventType.EXTERNAL_SERVICE_ERROR
    
    @pytest.mark.asyncio
    async def test_analyze_falls_back_on_empty(self, gemini_settings, fake_model, summary):
        """Test an empty answer becomes the fallback message."""
        assert await AdvisorAgent(gemini_settings).analyze(summary, RECENT) == ADVISOR_FALLBACK
    
    @pytest.mark.asyncio
    async def test_suggest_icons(self, gemini_settings, fake_model):
        """Test icon names are parsed from a JSON array reply."""
        fake_model.reply('Sure: ["Coffee", "CupSoda", "GlassWater", "Extra"]')
        icons = await AdvisorAgent(gemini_settings).suggest_icons("Coffee")
        assert icons == ["Coffee", "CupSoda", "GlassWater"]
    
    @pytest.mark.asyncio
    async def test_suggest_icons_defaults(self, gemini_settings, fake_model):
        """Test unusable replies give the default icons."""
        fake_model.reply("I cannot help with that")
        assert await AdvisorAgent(gemini_settings).suggest_icons("Pets") == DEFAULT_ICONS


class TestMarketDataAgent:
    """Tests for MarketDataAgent."""
    
    @pytest.mark.asyncio
    async def test_stock_price_parsed(self, gemini_settings, fake_model):
        """Test a JSON reply becomes a PriceQuote."""
        fake_model.reply('```json\n{"price": 120.5, "currency": "usd", "name": "NVIDIA", "fx_rate": 32.1}\n```')
        logger = ActivityLogger()
        
        quote = await MarketDataAgent(gemini_settings, logger).get_stock_price(" nvda ")
        
        assert quote.symbol == "NVDA"
        assert quote.price == Decimal("120.5")
        assert quote.currency == "USD"
        assert quote.estimated_fx_rate == Decimal("32.1")
        assert logger.recent_events[-1].details == {"found": True}
    
    @pytest.mark.asyncio
    async def test_stock_price_without_fx(self, gemini_settings, fake_model):
        """Test a local quote without fx_rate."""
        fake_model.reply('{"price": 1000, "currency": "TWD", "name": "TSMC"}')
        quote = await MarketDataAgent(gemini_settings).get_stock_price("2330")
        assert quote.price == Decimal("1000")
        assert quote.estimated_fx_rate is None
    
    @pytest.mark.asyncio
    async def test_stock_price_unusable_reply(self, gemini_settings, fake_model):
        """Test a reply without JSON yields None."""
        fake_model.reply("Market closed")
        logger = ActivityLogger()
        assert await MarketDataAgent(gemini_settings, logger).get_stock_price("NVDA") is None
        assert logger.recent_events[-1].details == {"found": False}
    
    @pytest.mark.asyncio
    async def test_stock_price_error(self, gemini_settings, fake_model):
        """Test a failing call yields None and logs the error."""
        logger = ActivityLogger()
        agent = MarketDataAgent(gemini_settings, logger)
        
        with patch.object(agent, "_generate", AsyncMock(side_effect=TimeoutError())):
            assert await agent.get_stock_price("NVDA") is None
        
        kinds = [e.event_type for e in logger.recent_events]
        assert ActivityEventType.EXTERNAL_SERVICE_ERROR in kinds
        assert kinds[-1] == ActivityEventType.PRICE_LOOKED_UP
    
    @pytest.mark.asyncio
    async def test_exchange_rate(self, gemini_settings, fake_model):
        """Test a rate is parsed; same currency needs no call."""
        fake_model.reply('{"rate": 32.15}')
        agent = MarketDataAgent(gemini_settings)
        
        assert await agent.get_exchange_rate("usd", "TWD") == Decimal("32.15")
        assert await agent.get_exchange_rate("TWD", "twd") == Decimal("1")
        assert fake_model.generate_content_async.await_count == 1
    
    @pytest.mark.asyncio
    async def test_exchange_rate_rejects_non_positive(self, gemini_settings, fake_model):
        """Test a zero rate is treated as no answer."""
        fake_model.reply('{"rate": 0}')
        assert await MarketDataAgent(gemini_settings).get_exchange_rate("USD", "TWD") is None
    
    def test_low_temperature(self, gemini_settings, fake_model):
        """Test market lookups use a low temperature."""
        with patch("wealthwise.agents.ai_agents.genai") as genai:
            MarketDataAgent(gemini_settings)
            config = genai.GenerativeModel.call_args.kwargs["generation_config"]
        assert config["temperature"] == 0.1
        genai.configure.assert_called_once_with(api_key="test-key")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
