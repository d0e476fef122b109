"""
Integration tests for the flows.

The store runs on an InMemoryMedium and quotes come from a scripted source.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from src.config import get_settings
from src.models.audit import AuditEventType, AuditSeverity
from src.models.ledger import InvestmentType
from src.orchestrator import (
    ConsolidationFlow,
    PortfolioRefreshFlow,
    create_app_components,
    create_quote_source,
)
from src.services.quotes import (
    HttpQuoteSource,
    MarketStatus,
    MockQuoteSource,
    QuoteCache,
    QuoteFetchError,
    QuoteSource,
)
from src.services.storage import InMemoryMedium


class ScriptedSource(QuoteSource):
    """Prices per symbol; anything else fails."""

    def __init__(self, prices):
        self.prices = prices
        self.calls = []

    async def fetch(self, symbol):
        self.calls.append(symbol)
        if symbol not in self.prices:
            raise QuoteFetchError(f"no price for {symbol}")
        return {"symbol": symbol, "price": self.prices[symbol], "change": 0, "changePercent": 0}


@pytest.fixture
def settings_env(monkeypatch, tmp_path):
    """Point every setting at the test's temp directory."""
    monkeypatch.setenv("LEDGER_STORAGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("QUOTES_PROVIDER", "mock")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestPortfolioRefreshFlow:
    """Tests for the price refresh flow."""

    def test_updates_resolved_positions_only(self, store, clock, audit_logger, investment_fields):
        """Positions with a quote get the new price; the rest keep theirs."""
        first = store.add_investment(investment_fields)
        second = store.add_investment({**investment_fields, "quantity": Decimal("5")})
        vale = store.add_investment({
            **investment_fields,
            "symbol": "VALE3.SA",
            "name": "Vale ON",
            "purchase_price": Decimal("60"),
        })

        source = ScriptedSource({"PETR4.SA": 36.75})
        flow = PortfolioRefreshFlow(store, QuoteCache(source, clock=clock), audit_logger)

        updated = asyncio.run(flow.refresh_prices())

        assert updated == 2
        prices = {inv.id: inv.current_price for inv in store.list_investments()}
        assert prices[first] == Decimal("36.75")
        assert prices[second] == Decimal("36.75")
        assert prices[vale] == Decimal("60")
        # Each symbol is requested once
        assert sorted(source.calls) == ["PETR4.SA", "VALE3.SA"]

        event = audit_logger.recent_events()[0]
        assert event.event_type == AuditEventType.PRICES_REFRESHED
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"requested": 3, "updated": 2}

    def test_no_investments(self, store, clock):
        """Nothing to refresh means no fetch at all."""
        source = ScriptedSource({})
        flow = PortfolioRefreshFlow(store, QuoteCache(source, clock=clock))
        assert asyncio.run(flow.refresh_prices()) == 0
        assert source.calls == []

    def test_all_quotes_fail(self, store, clock, investment_fields):
        """A total outage leaves every price unchanged."""
        store.add_investment(investment_fields)
        flow = PortfolioRefreshFlow(store, QuoteCache(ScriptedSource({}), clock=clock))

        assert asyncio.run(flow.refresh_prices()) == 0
        assert store.list_investments()[0].current_price == Decimal("20")

    def test_only_stocks_are_quoted(self, store, clock, investment_fields):
        """Treasury, CDI and fund positions are never sent to the quote source."""
        store.add_investment({
            **investment_fields,
            "type": InvestmentType.TESOURO,
            "symbol": "TESOURO-SELIC-2029",
            "name": "Tesouro Selic 2029",
        })
        source = ScriptedSource({"TESOURO-SELIC-2029": 99})
        flow = PortfolioRefreshFlow(store, QuoteCache(source, clock=clock))

        assert asyncio.run(flow.refresh_prices()) == 0
        assert source.calls == []

    def test_add_position_normalizes_symbol(self, store, clock, investment_fields):
        """Typed symbols get the market suffix before they are stored."""
        flow = PortfolioRefreshFlow(store, QuoteCache(ScriptedSource({}), clock=clock))
        flow.add_position({**investment_fields, "symbol": " itub4 "})
        assert store.list_investments()[0].symbol == "ITUB4.SA"

    def test_market_status(self, store, clock):
        """The flow reports market status in its configured timezone."""
        flow = PortfolioRefreshFlow(store, QuoteCache(ScriptedSource({}), clock=clock))
        # 2024-01-15 12:00 UTC is 09:00 in São Paulo
        assert flow.market_status(clock()) == MarketStatus.CLOSED


class TestConsolidationFlow:
    """Tests for the consolidation flow."""

    def test_consolidate_month_persists(self, store, clock, expense_fields, income_fields):
        """The generated consolidation is upserted into the store."""
        store.add_record(expense_fields)
        store.add_record(income_fields)
        flow = ConsolidationFlow(store, clock=clock)

        consolidation = flow.consolidate_month("2024-01")

        assert consolidation.resultado == Decimal("200")
        assert store.list_consolidations() == [consolidation]

    def test_consolidate_defaults_to_current_month(self, store, clock):
        """Without a month, the clock's month is consolidated."""
        consolidation = ConsolidationFlow(store, clock=clock).consolidate_month()
        assert consolidation.month == "2024-01"
        assert consolidation.created_at == clock()

    def test_reconsolidation_overwrites(self, store, clock, expense_fields):
        """Regenerating a month after new records replaces the cached entry."""
        flow = ConsolidationFlow(store, clock=clock)
        store.add_record(expense_fields)
        flow.consolidate_month("2024-01")
        store.add_record(expense_fields)
        flow.consolidate_month("2024-01")

        consolidations = store.list_consolidations()
        assert len(consolidations) == 1
        assert consolidations[0].total_despesas == Decimal("200")

    def test_consolidate_range(self, store, clock, expense_fields):
        """Every month in the range is persisted."""
        store.add_record(expense_fields)
        results = ConsolidationFlow(store, clock=clock).consolidate_range(
            ["2023-12", "2024-01"]
        )
        assert [c.month for c in results] == ["2023-12", "2024-01"]
        assert [c.month for c in store.list_consolidations()] == ["2024-01", "2023-12"]

    def test_compare_months_does_not_persist(self, store, clock, expense_fields, income_fields):
        """Comparison consolidations are computed but not stored."""
        store.add_record(expense_fields)
        store.add_record({**income_fields, "date": date(2023, 12, 5)})

        results = ConsolidationFlow(store, clock=clock).compare_months(["2023-12", "2024-01"])

        assert [c.resultado for c in results] == [Decimal("300"), Decimal("-100")]
        assert store.list_consolidations() == []

    def test_format_amount(self, store, clock):
        """Amounts are formatted in the configured currency."""
        assert ConsolidationFlow(store, clock=clock).format_amount(1234.5).endswith("1.234,50")

    def test_dashboard(self, store, clock, expense_fields, income_fields):
        """Dashboard metrics compare against the previous month."""
        store.add_record(expense_fields)
        store.add_record(income_fields)
        metrics = ConsolidationFlow(store, clock=clock).dashboard()
        assert metrics.current_balance == Decimal("200")
        assert metrics.top_expense_category == "Alimentação"

    def test_chart_defaults_to_recent_months(self, store, clock, expense_fields):
        """The chart covers the configured number of months up to now."""
        store.add_record(expense_fields)
        points = ConsolidationFlow(store, clock=clock, chart_months=3).chart()
        assert len(points) == 3
        assert points[-1].despesas == Decimal("100")
        assert points[0].despesas == 0


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_builds_file_backed_store(self, settings_env, expense_fields):
        """By default the store persists to the configured data directory."""
        store, quote_cache, refresh_flow, consolidation_flow = create_app_components()

        assert store.is_available
        store.add_record(expense_fields)
        assert (settings_env / "data" / "records.json").exists()
        assert isinstance(quote_cache, QuoteCache)
        assert isinstance(refresh_flow, PortfolioRefreshFlow)
        assert isinstance(consolidation_flow, ConsolidationFlow)

    def test_without_storage(self, settings_env, expense_fields):
        """use_storage=False gives an empty, write-ignoring store."""
        store, _, _, _ = create_app_components(use_storage=False)
        assert store.is_available is False
        store.add_record(expense_fields)
        assert store.list_records() == []

    def test_storage_disabled_by_env(self, settings_env, monkeypatch):
        """LEDGER_STORAGE_ENABLED=false detaches the medium."""
        monkeypatch.setenv("LEDGER_STORAGE_ENABLED", "false")
        store, _, _, _ = create_app_components(medium=InMemoryMedium())
        assert store.is_available is False

    def test_injected_medium_and_source(self, settings_env, income_fields):
        """Explicit medium and quote source are used as given."""
        medium = InMemoryMedium()
        source = ScriptedSource({})
        store, quote_cache, _, consolidation_flow = create_app_components(
            medium=medium, quote_source=source
        )
        assert quote_cache.source is source
        store.add_record(income_fields)
        assert medium.get_item("records") is not None
        assert consolidation_flow.consolidate_month("2024-01").total_receitas == Decimal("300")

    def test_end_to_end_refresh(self, settings_env, investment_fields):
        """A refresh through the factory-built components updates prices."""
        store, _, refresh_flow, _ = create_app_components(
            medium=InMemoryMedium(), quote_source=ScriptedSource({"PETR4.SA": 40})
        )
        store.add_investment(investment_fields)

        assert asyncio.run(refresh_flow.refresh_prices()) == 1
        assert store.list_investments()[0].current_price == Decimal("40")

    def test_quote_source_selection(self, settings_env, monkeypatch):
        """QUOTES_PROVIDER picks the quote source."""
        assert isinstance(create_quote_source(), MockQuoteSource)
        monkeypatch.setenv("QUOTES_PROVIDER", "http")
        assert isinstance(create_quote_source(), HttpQuoteSource)

    def test_default_quote_source_is_mock(self, settings_env):
        """Without QUOTES_PROVIDER=http the demo source is used."""
        _, quote_cache, _, _ = create_app_components(medium=InMemoryMedium())
        assert isinstance(quote_cache.source, MockQuoteSource)
