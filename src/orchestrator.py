"""
Main Orchestrator for the Financial Ledger

This module ties the components together and defines the end-to-end flows:
1. Price refresh (investments -> quote cache -> currentPrice write-back)
2. Consolidation (records + investments -> engine -> upsert)

DESIGN DECISION: The store, the engine and the quote cache never call each
other. Flows read plain snapshots from the store, hand them to the engine
or the cache, and write results back through the store's public API.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from src.audit import AuditLogger, configure_logging, get_logger
from src.calculations import (
    current_month,
    generate_chart_data,
    generate_dashboard_metrics,
    generate_monthly_consolidation,
    last_n_months,
    previous_month,
)
from src.calculations.formatting import DEFAULT_CURRENCY, DEFAULT_LOCALE, format_currency
from src.config import get_settings
from src.models.audit import AuditEventBuilder
from src.models.ledger import (
    ChartData,
    DashboardMetrics,
    InvestmentType,
    MonthlyConsolidation,
)
from src.services.quotes import (
    HttpQuoteSource,
    MarketStatus,
    MockQuoteSource,
    QuoteCache,
    QuoteSource,
    format_symbol,
    market_status,
)
from src.services.quotes.market import DEFAULT_MARKET_SUFFIX, DEFAULT_MARKET_TIMEZONE
from src.services.storage import JsonFileMedium, RecordStore, StorageMedium

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PortfolioRefreshFlow:
    """
    Refreshes investment current prices from the quote cache.

    Flow:
    1. Read investments from the store
    2. Ask the cache for all their symbols at once
    3. Write each resolved price into currentPrice
    4. Leave positions without a quote untouched
    """

    def __init__(
        self,
        store: RecordStore,
        quote_cache: QuoteCache,
        audit_logger: Optional[AuditLogger] = None,
        market_timezone: str = DEFAULT_MARKET_TIMEZONE,
        market_suffix: str = DEFAULT_MARKET_SUFFIX,
    ):
        self._store = store
        self._quote_cache = quote_cache
        self._audit_logger = audit_logger
        self._market_timezone = market_timezone
        self._market_suffix = market_suffix

    def market_status(self, now: Optional[datetime] = None) -> MarketStatus:
        return market_status(now, self._market_timezone)

    def add_position(self, fields: Mapping[str, Any]) -> str:
        """Add an investment with its symbol normalized for the quote source."""
        fields = dict(fields)
        if fields.get("symbol"):
            fields["symbol"] = format_symbol(str(fields["symbol"]), self._market_suffix)
        return self._store.add_investment(fields)

    async def refresh_prices(self) -> int:
        """
        Update currentPrice for every listed stock that got a quote.

        Only `acao` positions are quoted; funds, CDI and treasury bonds
        keep their manually entered prices.

        Returns:
            Number of investments updated
        """
        investments = [
            inv for inv in self._store.list_investments()
            if inv.type == InvestmentType.ACAO
        ]
        if not investments:
            return 0

        symbols = list(dict.fromkeys(inv.symbol for inv in investments))
        quotes = await self._quote_cache.get_multiple_quotes(symbols)
        prices = {quote.symbol: quote.price for quote in quotes}

        updated = 0
        for investment in investments:
            price = prices.get(investment.symbol)
            if price is None:
                continue
            if self._store.update_investment(investment.id, {"current_price": price}):
                updated += 1

        logger.info(
            "prices_refreshed",
            symbols=len(symbols),
            resolved=len(prices),
            updated=updated,
        )
        if self._audit_logger:
            self._audit_logger.log(
                AuditEventBuilder.prices_refreshed(len(investments), updated)
            )
        return updated


class ConsolidationFlow:
    """
    Generates and caches monthly consolidations.

    Consolidations are a cache: regenerating a month always overwrites it.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock = _utc_now,
        locale: str = DEFAULT_LOCALE,
        currency: str = DEFAULT_CURRENCY,
        chart_months: int = 6,
    ):
        self._store = store
        self._clock = clock
        self._locale = locale
        self._currency = currency
        self._chart_months = chart_months

    def consolidate_month(self, month: Optional[str] = None) -> MonthlyConsolidation:
        """Regenerate and persist one month (default: the current month)."""
        now = self._clock()
        month = month or current_month(now)
        consolidation = generate_monthly_consolidation(
            self._store.list_records(),
            self._store.list_investments(),
            month,
            now=now,
        )
        self._store.upsert_consolidation(consolidation)
        return consolidation

    def consolidate_range(self, months: list[str]) -> list[MonthlyConsolidation]:
        """Regenerate and persist several months from a single snapshot."""
        records = self._store.list_records()
        investments = self._store.list_investments()
        now = self._clock()

        results = []
        for month in months:
            consolidation = generate_monthly_consolidation(
                records, investments, month, now=now
            )
            self._store.upsert_consolidation(consolidation)
            results.append(consolidation)
        return results

    def compare_months(self, months: list[str]) -> list[MonthlyConsolidation]:
        """Consolidations for a comparison view. Nothing is persisted."""
        records = self._store.list_records()
        investments = self._store.list_investments()
        now = self._clock()
        return [
            generate_monthly_consolidation(records, investments, month, now=now)
            for month in months
        ]

    def dashboard(self, month: Optional[str] = None) -> DashboardMetrics:
        """Dashboard metrics for a month, compared with the month before."""
        month = month or current_month(self._clock())
        return generate_dashboard_metrics(
            self._store.list_records(),
            self._store.list_investments(),
            month,
            previous_month(month),
        )

    def chart(self, months: Optional[list[str]] = None) -> list[ChartData]:
        """Evolution chart; defaults to the last `chart_months` months."""
        if months is None:
            months = last_n_months(self._chart_months, self._clock())
        return generate_chart_data(self._store.list_records(), months, self._locale)

    def format_amount(self, value) -> str:
        return format_currency(value, self._currency, self._locale)


def create_quote_source() -> QuoteSource:
    """Quote source selected by QUOTES_PROVIDER."""
    settings = get_settings().quotes
    if settings.provider == "http":
        return HttpQuoteSource(settings.api_url, settings.timeout_seconds)
    return MockQuoteSource()


def create_app_components(
    medium: Optional[StorageMedium] = None,
    quote_source: Optional[QuoteSource] = None,
    use_storage: bool = True,
) -> tuple[RecordStore, QuoteCache, PortfolioRefreshFlow, ConsolidationFlow]:
    """
    Factory function to create all application components.

    Args:
        medium: Storage medium to use. Defaults to a JsonFileMedium in the
                configured data directory.
        quote_source: Quote source to use. Defaults to the configured provider.
        use_storage: Set to False to run with no durable medium
                     (reads empty, writes no-op).

    Returns:
        (record_store, quote_cache, portfolio_refresh_flow, consolidation_flow)
    """
    settings = get_settings()
    app_settings = settings.app
    storage_settings = settings.storage
    quote_settings = settings.quotes

    configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)
    audit_logger = AuditLogger(history_size=app_settings.audit_history_size)

    if not (use_storage and storage_settings.enabled):
        medium = None
    elif medium is None:
        medium = JsonFileMedium(storage_settings.data_dir)

    if medium is None:
        logger.warning("storage_not_configured", detail="running without a durable medium")

    store = RecordStore(
        medium,
        audit_logger=audit_logger,
        backup_enabled=storage_settings.backup_enabled,
    )
    quote_cache = QuoteCache(quote_source or create_quote_source())
    logger.info(
        "components_created",
        environment=app_settings.app_environment,
        storage=type(medium).__name__ if medium is not None else None,
        quote_source=type(quote_cache.source).__name__,
    )

    return (
        store,
        quote_cache,
        PortfolioRefreshFlow(
            store,
            quote_cache,
            audit_logger,
            market_timezone=quote_settings.market_timezone,
            market_suffix=quote_settings.market_suffix,
        ),
        ConsolidationFlow(
            store,
            locale=app_settings.locale,
            currency=app_settings.currency,
            chart_months=app_settings.default_chart_months,
        ),
    )
