"""
Main Orchestrator for WealthWise

This module ties together all the components behind one controller,
FinanceTracker, which owns the FinancialData aggregate and defines the
end-to-end flows for:
1. Startup (load -> recurring catch-up -> save)
2. Ledger mutations (validate -> apply -> save)
3. Backup export / import
4. Insights (summary -> AI advisor, price lookups)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No mutation is accepted before the startup catch-up has run
- Every successful mutation is followed by a whole-blob save
- AI and market data calls only READ the aggregate

There are no globals: the aggregate is reachable only through the
tracker that loaded it.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from wealthwise.activity import ActivityLogger, create_correlation_id
from wealthwise.agents import AdvisorAgent, MarketDataAgent
from wealthwise.config import AppSettings, get_settings
from wealthwise.exceptions import LedgerError, NotFoundError, ValidationError
from wealthwise.ledger import AccountStore, LedgerEngine
from wealthwise.models.activity import ActivityEventBuilder
from wealthwise.models.ledger import (
    Account,
    AccountKind,
    CustomCategory,
    FinancialData,
    ProjectedOccurrence,
    RecurringRule,
    Transaction,
)
from wealthwise.models.summary import FinancialSummary, PriceQuote
from wealthwise.queries import build_summary, recent_transactions
from wealthwise.recurring import CancelMode, RecurringRuleProcessor
from wealthwise.services.storage import (
    ImportFormatError,
    JsonFileStorage,
    LedgerStorageInterface,
    export_backup,
    parse_backup,
)
from wealthwise.validation import LedgerValidator


MISSING_API_KEY_MESSAGE = (
    "The AI advisor is not configured: set GEMINI_API_KEY in your environment."
)


class FinanceTracker:
    """
    Controller for one user's finances.
    
    Flow:
    1. start() -> load the blob, run the recurring catch-up, save
    2. Mutations -> validated and applied by the ledger, then saved
    3. Insights -> read-only snapshots for display and the advisor
    
    Step 1 is MANDATORY. Every mutation raises LedgerError before it.
    """
    
    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[AppSettings] = None,
        validator: Optional[LedgerValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
        advisor: Optional[AdvisorAgent] = None,
        market_data: Optional[MarketDataAgent] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app
        self._validator = validator or LedgerValidator()
        self._activity = activity_logger or ActivityLogger()
        self._advisor = advisor
        self._market_data = market_data
        
        self._data: Optional[FinancialData] = None
        self._accounts: Optional[AccountStore] = None
        self._engine: Optional[LedgerEngine] = None
        self._processor: Optional[RecurringRuleProcessor] = None
    
    # ── Wiring ────────────────────────────────────────────────────────────────
    
    def _bind(self, data: FinancialData) -> None:
        """Point every component at a (new) aggregate."""
        self._data = data
        self._accounts = AccountStore(data.accounts)
        self._engine = LedgerEngine(
            data,
            accounts=self._accounts,
            validator=self._validator,
            activity_logger=self._activity,
        )
        self._processor = RecurringRuleProcessor(
            data,
            self._engine,
            validator=self._validator,
            activity_logger=self._activity,
            note_prefix=self._settings.recurring_note_prefix,
        )
    
    def _require_started(self) -> None:
        if self._data is None:
            raise LedgerError("FinanceTracker.start() must run before the ledger can be used.")
    
    def _commit(self) -> None:
        self._storage.save(self._data)
    
    def _rule_state(self) -> list[tuple]:
        return [
            (r.id, r.active, r.next_due_date, r.remaining_occurrences)
            for r in self._data.recurring_rules
        ]
    
    @property
    def started(self) -> bool:
        return self._data is not None
    
    @property
    def data(self) -> FinancialData:
        self._require_started()
        return self._data
    
    @property
    def accounts(self) -> AccountStore:
        self._require_started()
        return self._accounts
    
    @property
    def engine(self) -> LedgerEngine:
        self._require_started()
        return self._engine
    
    @property
    def processor(self) -> RecurringRuleProcessor:
        self._require_started()
        return self._processor
    
    # ── Startup ───────────────────────────────────────────────────────────────
    
    def start(self, today: date) -> list[Transaction]:
        """
        Load persisted data and materialize everything that fell due.
        
        Returns the transactions the catch-up pass created.
        """
        self._bind(self._storage.load())
        return self.process_due(today)
    
    def process_due(self, today: date) -> list[Transaction]:
        """Run the recurring catch-up pass; saves only when something changed."""
        self._require_started()
        before = self._rule_state()
        created = self._processor.process_due(today, correlation_id=create_correlation_id())
        after = self._rule_state()
        if created or before != after:
            self._commit()
        return created
    
    # ── Transactions ──────────────────────────────────────────────────────────
    
    @property
    def transactions(self) -> list[Transaction]:
        """All transactions, most recent first."""
        self._require_started()
        return self._engine.transactions_for_display()
    
    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._require_started()
        stored = self._engine.add_transaction(transaction, correlation_id=create_correlation_id())
        self._commit()
        return stored
    
    def add_recurring_transaction(
        self,
        transaction: Transaction,
        occurrences: Optional[int],
        today: date,
    ) -> tuple[RecurringRule, Optional[Transaction]]:
        """
        Save a transaction the user marked as repeating monthly.
        
        occurrences counts the first one too; None means until cancelled.
        """
        self._require_started()
        result = self._processor.schedule_from_transaction(
            transaction,
            occurrences,
            today,
            correlation_id=create_correlation_id(),
        )
        self._commit()
        return result
    
    def update_transaction(self, transaction_id: str, transaction: Transaction) -> Transaction:
        self._require_started()
        stored = self._engine.update_transaction(
            transaction_id,
            transaction,
            correlation_id=create_correlation_id(),
        )
        self._commit()
        return stored
    
    def delete_transaction(self, transaction_id: str) -> Transaction:
        self._require_started()
        removed = self._engine.delete_transaction(transaction_id, correlation_id=create_correlation_id())
        self._commit()
        return removed
    
    # ── Recurring rules ───────────────────────────────────────────────────────
    
    @property
    def recurring_rules(self) -> list[RecurringRule]:
        self._require_started()
        return self._processor.rules
    
    def add_rule(self, rule: RecurringRule) -> RecurringRule:
        self._require_started()
        stored = self._processor.add_rule(rule)
        self._commit()
        return stored
    
    def cancel_rule(self, rule_id: str, mode: CancelMode) -> RecurringRule:
        self._require_started()
        rule = self._processor.cancel_rule(rule_id, mode, correlation_id=create_correlation_id())
        self._commit()
        return rule
    
    def project_month(self, year: int, month: int, today: date) -> list[ProjectedOccurrence]:
        self._require_started()
        return self._processor.project_month(year, month, today)
    
    # ── Accounts ──────────────────────────────────────────────────────────────
    
    def add_account(self, account: Account) -> Account:
        self._require_started()
        self._accounts.add(account)
        self._activity.log(ActivityEventBuilder.account_saved(account.id, account.kind.value, account.name))
        self._commit()
        return account
    
    def save_account(self, account: Account) -> Account:
        """
        Insert or overwrite an account, balance included.
        
        This is a direct override: no transaction records the change.
        """
        self._require_started()
        self._accounts.upsert(account)
        self._activity.log(ActivityEventBuilder.account_saved(account.id, account.kind.value, account.name))
        self._commit()
        return account
    
    def set_balance(self, account_id: str, balance: Decimal) -> Decimal:
        """Overwrite a balance directly. Returns the previous balance."""
        self._require_started()
        previous = self._accounts.set_balance(account_id, balance)
        self._activity.log(ActivityEventBuilder.balance_overridden(account_id, previous, balance))
        self._commit()
        return previous
    
    def delete_account(self, account_id: str) -> Account:
        """
        Remove an account.
        
        Transactions and rules that reference it keep the dangling id
        and stop moving any balance.
        """
        self._require_started()
        account = self._accounts.remove(account_id)
        orphaned = sum(
            1 for t in self._data.transactions
            if account_id in (t.source_id, t.destination_id)
        )
        self._activity.log(ActivityEventBuilder.account_deleted(account_id, orphaned))
        self._commit()
        return account
    
    def account_name(self, account_id: Optional[str]) -> str:
        self._require_started()
        return self._accounts.name_of(account_id)
    
    # ── Custom categories ─────────────────────────────────────────────────────
    
    def add_custom_category(self, category: CustomCategory) -> CustomCategory:
        self._require_started()
        result = self._validator.validate_custom_category(category, self._data.custom_categories)
        if result.has_errors:
            raise ValidationError.from_result(result)
        self._data.custom_categories.append(category)
        self._commit()
        return category
    
    def delete_custom_category(self, category_id: str) -> CustomCategory:
        self._require_started()
        for index, category in enumerate(self._data.custom_categories):
            if category.id == category_id:
                del self._data.custom_categories[index]
                self._commit()
                return category
        raise NotFoundError("category", category_id)
    
    # ── Backup ────────────────────────────────────────────────────────────────
    
    def export_backup(
        self,
        now: datetime,
        directory: Optional[Union[str, Path]] = None,
    ) -> Path:
        """Write a dated backup file; defaults to the configured export_dir."""
        self._require_started()
        path = export_backup(self._data, directory or self._settings.export_dir, now)
        self._activity.log(ActivityEventBuilder.data_exported(str(path)))
        return path
    
    def import_backup(self, text: str, today: date) -> list[Transaction]:
        """
        Replace ALL current data with a backup.
        
        On ImportFormatError nothing changes. On success the imported
        rules are caught up to today before the data is saved.
        
        Returns the transactions the catch-up pass created.
        """
        self._require_started()
        try:
            data = parse_backup(text)
        except ImportFormatError as e:
            self._activity.log(ActivityEventBuilder.import_rejected(str(e)))
            raise
        
        self._bind(data)
        self._activity.log(ActivityEventBuilder.data_imported(len(data.transactions)))
        created = self._processor.process_due(today, correlation_id=create_correlation_id())
        self._commit()
        return created
    
    # ── Insights ──────────────────────────────────────────────────────────────
    
    def summary(self, as_of: date) -> FinancialSummary:
        self._require_started()
        return build_summary(
            self._data.transactions,
            self._accounts,
            self._data.recurring_rules,
            as_of,
        )
    
    def _get_advisor(self) -> Optional[AdvisorAgent]:
        if self._advisor is None:
            try:
                self._advisor = AdvisorAgent(activity_logger=self._activity)
            except PydanticValidationError as e:
                self._activity.log(ActivityEventBuilder.external_service_error("gemini_advisor", str(e)))
        return self._advisor
    
    def _get_market_data(self) -> Optional[MarketDataAgent]:
        if self._market_data is None:
            try:
                self._market_data = MarketDataAgent(activity_logger=self._activity)
            except PydanticValidationError as e:
                self._activity.log(ActivityEventBuilder.external_service_error("gemini_market_data", str(e)))
        return self._market_data
    
    async def get_advice(self, as_of: date, query: Optional[str] = None) -> str:
        """
        Ask the AI advisor about the current snapshot.
        
        Never raises for advisor problems; returns a message instead.
        """
        self._require_started()
        advisor = self._get_advisor()
        if advisor is None:
            return MISSING_API_KEY_MESSAGE
        
        recent = recent_transactions(
            self._data.transactions,
            self._settings.advisor_recent_transactions,
        )
        return await advisor.analyze(
            self.summary(as_of),
            recent,
            query,
            accounts=list(self._accounts),
        )
    
    async def lookup_price(self, symbol: str) -> Optional[PriceQuote]:
        """Latest quote for a ticker, or None. Read-only."""
        agent = self._get_market_data()
        if agent is None:
            return None
        return await agent.get_stock_price(symbol, self._settings.base_currency)
    
    async def lookup_exchange_rate(self, from_currency: str) -> Optional[Decimal]:
        """Base currency units per one from_currency, or None. Read-only."""
        agent = self._get_market_data()
        if agent is None:
            return None
        return await agent.get_exchange_rate(from_currency, self._settings.base_currency)
    
    def prefill_investment(
        self,
        account: Account,
        quote: PriceQuote,
        today: date,
    ) -> Account:
        """
        Copy of an asset with quote fields and market value filled in.
        
        Nothing is saved; pass the result to save_account() if the user
        accepts it.
        """
        if account.kind != AccountKind.ASSET:
            raise ValidationError("Only assets can hold investment positions.")
        
        if quote.currency == self._settings.base_currency:
            fx_rate = Decimal("1")
        else:
            fx_rate = quote.estimated_fx_rate or self._settings.default_fx_rate
        
        updated = account.model_copy(update={
            "symbol": quote.symbol,
            "current_price": quote.price,
            "currency": quote.currency,
            "last_updated": today,
        })
        value = updated.market_value(fx_rate)
        if value is not None:
            updated.balance = value.quantize(Decimal("0.01"))
        return updated


def create_app_components(
    settings: Optional[AppSettings] = None,
    activity_logger: Optional[ActivityLogger] = None,
) -> FinanceTracker:
    """
    Factory function to create the application controller.
    
    Storage is the local JSON file named by the settings. AI agents are
    created on first use so the ledger works without an API key.
    
    Returns:
        An unstarted FinanceTracker; call start(today) before use.
    """
    settings = settings or get_settings().app
    activity_logger = activity_logger or ActivityLogger()
    storage = JsonFileStorage.from_settings(settings, activity_logger)
    return FinanceTracker(
        storage,
        settings=settings,
        activity_logger=activity_logger,
    )
