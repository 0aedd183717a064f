"""
AI Agents for WealthWise

DESIGN DECISION: The AI features are thin async wrappers around Gemini.
They sit OUTSIDE the ledger:
1. They only read a deterministic snapshot of the data
2. They never mutate balances, transactions or rules
3. Every failure degrades to a fallback value at this boundary

CRITICAL BOUNDARIES:

1. ADVISOR AGENT:
   - CAN: Interpret a FinancialSummary and recent transactions
   - CAN: Answer a free-text question about that snapshot
   - CANNOT: Change any data
   - MUST: Return a readable message even when the call fails

2. MARKET DATA AGENT:
   - CAN: Look up a quote or an exchange rate
   - CANNOT: Be authoritative; results only pre-fill account fields
   - MUST: Return None when nothing usable comes back

The LLM is an ADVISOR, not a BOOKKEEPER.
"""

import json
from decimal import Decimal
from typing import Optional, Sequence

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

from wealthwise.activity import ActivityLogger
from wealthwise.config import GeminiSettings, get_settings
from wealthwise.models.activity import ActivityEventBuilder
from wealthwise.models.ledger import Account, AccountKind, Transaction
from wealthwise.models.summary import FinancialSummary, PriceQuote


ADVISOR_FALLBACK = (
    "Sorry, the advisor could not analyse your data right now. "
    "Check your network connection and Gemini API key, then try again."
)
DEFAULT_ICONS = ["HelpCircle", "Tag", "Hash"]

ADVISOR_SYSTEM_INSTRUCTION = (
    "You are WealthWise, a calm and precise personal finance assistant. "
    "Base every statement on the figures you are given; never invent numbers."
)


def _extract_json(text: str, opening: str = "{", closing: str = "}") -> Optional[str]:
    """Cut the outermost JSON object (or array) out of a model reply."""
    start = text.find(opening)
    end = text.rfind(closing) + 1
    if start >= 0 and end > start:
        return text[start:end]
    return None


class _GeminiAgent:
    """Shared Gemini setup and the retried generation call."""
    
    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        activity_logger: Optional[ActivityLogger] = None,
        temperature: Optional[float] = None,
        system_instruction: Optional[str] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._activity = activity_logger or ActivityLogger()
        self._configure_genai(temperature, system_instruction)
    
    def _configure_genai(
        self,
        temperature: Optional[float],
        system_instruction: Optional[str],
    ):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature if temperature is None else temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
            system_instruction=system_instruction,
        )
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._model.generate_content_async(
            prompt,
            request_options={"timeout": self._settings.request_timeout_seconds},
        )
        return (response.text or "").strip()
    
    def _log_failure(self, service: str, error: Exception) -> None:
        self._activity.log(ActivityEventBuilder.external_service_error(service, str(error)))


class AdvisorAgent(_GeminiAgent):
    """
    AI financial advisor.
    
    RESPONSIBILITIES:
    - Assess overall financial health from a summary snapshot
    - Spot spending patterns in recent transactions
    - Answer the user's own question when one is given
    
    BOUNDARIES:
    - NEVER mutates data
    - NEVER raises; failures become ADVISOR_FALLBACK
    """
    
    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        super().__init__(settings, activity_logger, system_instruction=ADVISOR_SYSTEM_INSTRUCTION)
    
    def build_prompt(
        self,
        summary: FinancialSummary,
        recent: Sequence[Transaction],
        query: Optional[str] = None,
        accounts: Sequence[Account] = (),
    ) -> str:
        """
        Render the snapshot the model sees.
        
        Deterministic: the same inputs always give the same prompt.
        """
        lines = [
            "Analyse the following personal finances. Answer in Markdown and keep it concise.",
            "",
            "**Summary**",
            f"- Net worth: {summary.net_worth:,.2f}",
            f"- Total assets: {summary.total_assets:,.2f}",
            f"- Total liabilities: {summary.total_liabilities:,.2f}",
            f"- Income this month: {summary.month_income:,.2f}",
            f"- Expenses this month: {summary.month_expenses:,.2f}",
            f"- Recorded income (all time): {summary.total_income:,.2f}",
            f"- Recorded expenses (all time): {summary.total_expenses:,.2f}",
        ]
        
        if summary.expense_by_category:
            lines += ["", "**Spending by category**"]
            lines += [
                f"- {c.category}: {c.total:,.2f} ({c.count} transactions)"
                for c in summary.expense_by_category
            ]
        
        lines += ["", f"**Recent transactions (latest {len(recent)})**"]
        lines += [
            f"- [{t.date.isoformat()}] {t.type.value}: {t.amount:,.2f} ({t.category}) {t.note}".rstrip()
            for t in recent
        ]
        
        for kind, title in ((AccountKind.ASSET, "Assets"), (AccountKind.LIABILITY, "Liabilities")):
            listed = [a for a in accounts if a.kind == kind]
            if not listed:
                continue
            lines += ["", f"**{title}**"]
            for account in listed:
                line = f"- {account.name} ({account.category}): {account.balance:,.2f}"
                gain = account.unrealized_gain()
                if account.symbol and gain is not None:
                    line += f" [{account.symbol} unrealized gain: {gain:,.2f}]"
                lines.append(line)
        
        lines.append("")
        if query:
            lines.append(f'**User question:** "{query}"')
        else:
            lines.append(
                "**Task:** Briefly assess my financial health, point out spending "
                "patterns, and give 3 concrete actions to grow my net worth."
            )
        return "\n".join(lines)
    
    async def analyze(
        self,
        summary: FinancialSummary,
        recent: Sequence[Transaction],
        query: Optional[str] = None,
        accounts: Sequence[Account] = (),
    ) -> str:
        """
        Produce a Markdown analysis of the snapshot.
        
        Returns ADVISOR_FALLBACK if the model fails or answers nothing.
        """
        prompt = self.build_prompt(summary, recent, query, accounts)
        try:
            text = await self._generate(prompt)
        except Exception as e:
            self._log_failure("gemini_advisor", e)
            return ADVISOR_FALLBACK
        
        if not text:
            return ADVISOR_FALLBACK
        
        self._activity.log(ActivityEventBuilder.advice_generated(bool(query), len(text)))
        return text
    
    async def suggest_icons(self, category_name: str) -> list[str]:
        """
        Suggest three Lucide icon names for a custom category.
        
        Falls back to DEFAULT_ICONS on any failure.
        """
        prompt = (
            f'Suggest icons for the personal finance category "{category_name}". '
            "Return only a JSON array of exactly 3 distinct PascalCase icon names "
            'from the Lucide icon library, e.g. ["Coffee", "CupSoda", "GlassWater"].'
        )
        try:
            text = await self._generate(prompt)
            raw = _extract_json(text, "[", "]")
            icons = json.loads(raw) if raw else None
        except Exception as e:
            self._log_failure("gemini_icons", e)
            return list(DEFAULT_ICONS)
        
        if not isinstance(icons, list) or not all(isinstance(i, str) for i in icons):
            return list(DEFAULT_ICONS)
        return icons[:3] or list(DEFAULT_ICONS)


class MarketDataAgent(_GeminiAgent):
    """
    Stock price and FX lookups.
    
    Results are suggestions for the account form. Nothing here is
    written to the ledger.
    """
    
    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        # Low temperature: we want numbers, not prose
        super().__init__(settings, activity_logger, temperature=0.1)
    
    async def get_stock_price(
        self,
        symbol: str,
        base_currency: str = "TWD",
    ) -> Optional[PriceQuote]:
        """
        Look up the latest price for a ticker.
        
        Numeric tickers (e.g. 2330) are treated as Taiwan listings,
        others (e.g. NVDA) as US listings.
        
        Returns None if nothing usable comes back.
        """
        symbol = symbol.strip().upper()
        prompt = f"""Find the current stock price for ticker "{symbol}".
If it is a Taiwan stock (e.g. 2330), assume TWSE/TPEX. If US (e.g. QQQ, NVDA), assume the US market.
Also give the exchange rate from the quote currency to {base_currency} if they differ.

Respond with ONLY a JSON object in this exact format:
{{"price": 123.45, "currency": "USD", "name": "Apple Inc.", "fx_rate": 32.1}}"""

        quote = None
        try:
            raw = _extract_json(await self._generate(prompt))
            if raw:
                data = json.loads(raw)
                quote = PriceQuote(
                    symbol=symbol,
                    price=Decimal(str(data["price"])),
                    currency=str(data.get("currency", base_currency)).upper(),
                    name=data.get("name"),
                    estimated_fx_rate=(
                        Decimal(str(data["fx_rate"])) if data.get("fx_rate") else None
                    ),
                )
        except Exception as e:
            self._log_failure("gemini_stock_price", e)
        
        self._activity.log(ActivityEventBuilder.price_looked_up(symbol, quote is not None))
        return quote
    
    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """Units of to_currency per one from_currency, or None."""
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return Decimal("1")
        
        prompt = (
            f"What is the current exchange rate from {from_currency} to {to_currency}? "
            'Respond with ONLY a JSON object like {"rate": 32.15}.'
        )
        try:
            raw = _extract_json(await self._generate(prompt))
            if not raw:
                return None
            rate = Decimal(str(json.loads(raw)["rate"]))
        except Exception as e:
            self._log_failure("gemini_exchange_rate", e)
            return None
        
        return rate if rate > 0 else None
