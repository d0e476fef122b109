"""
Tests for the Financial Ledger

Test strategy:
1. Unit tests for individual components (models, engine, cache)
2. Integration tests for flows (with mocked external services)
3. No real API calls in tests (use mocks)
"""

import json
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import ValidationError

from src.models.ledger import (
    FinancialCategory,
    FinancialRecord,
    ImportResult,
    Investment,
    InvestmentInput,
    InvestmentType,
    LedgerSnapshot,
    MonthlyConsolidation,
    RecordInput,
    StockQuote,
    month_of,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

T0 = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestRecordModels:
    """Tests for ledger record models."""

    def test_record_input_derives_month(self):
        """Month is filled in from the date when not given."""
        record = RecordInput(
            category=FinancialCategory.DESPESAS,
            subcategory="Moradia",
            amount=Decimal("1500"),
            date=date(2024, 3, 31),
        )
        assert record.month == "2024-03"

    def test_record_input_accepts_matching_month(self):
        """A month consistent with the date is kept."""
        record = RecordInput(
            category="receitas",
            subcategory="Salário",
            amount=Decimal("5000"),
            date=date(2024, 12, 1),
            month="2024-12",
        )
        assert record.month == "2024-12"
        assert record.category == FinancialCategory.RECEITAS

    def test_record_input_rejects_inconsistent_month(self):
        """A month that disagrees with the date is rejected."""
        with pytest.raises(ValidationError):
            RecordInput(
                category="despesas",
                subcategory="Lazer",
                amount=Decimal("50"),
                date=date(2024, 1, 10),
                month="2024-02",
            )

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_record_input_rejects_non_positive_amount(self, amount):
        """Amounts must be strictly positive."""
        with pytest.raises(ValidationError):
            RecordInput(
                category="despesas",
                subcategory="Lazer",
                amount=amount,
                date=date(2024, 1, 10),
            )

    def test_record_input_rejects_unknown_category(self):
        """Only the four ledger buckets are accepted."""
        with pytest.raises(ValidationError):
            RecordInput(
                category="outros",
                subcategory="Lazer",
                amount=Decimal("10"),
                date=date(2024, 1, 10),
            )

    def test_record_input_strips_whitespace(self):
        """Whitespace is stripped from labels."""
        record = RecordInput(
            category="despesas",
            subcategory="  Transporte  ",
            amount=Decimal("12.30"),
            date=date(2024, 1, 10),
        )
        assert record.subcategory == "Transporte"

    def test_input_accepts_camel_case_keys(self):
        """Wire documents use camelCase keys."""
        investment = InvestmentInput.model_validate({
            "type": "acao",
            "symbol": "VALE3.SA",
            "name": "Vale ON",
            "quantity": 5,
            "purchasePrice": 60,
            "purchaseDate": "2023-01-02",
        })
        assert investment.purchase_price == Decimal("60")

    def test_financial_record_timestamp_validation(self):
        """updatedAt cannot precede createdAt."""
        with pytest.raises(ValidationError):
            FinancialRecord(
                id="1_abc",
                category="despesas",
                subcategory="Lazer",
                amount=Decimal("10"),
                date=date(2024, 1, 10),
                created_at=T0,
                updated_at=datetime(2024, 1, 14, tzinfo=timezone.utc),
            )

    def test_financial_record_document_shape(self):
        """Documents carry camelCase keys and numeric amounts."""
        record = FinancialRecord(
            id="1_abc",
            category="investimento-mensal",
            subcategory="Aporte",
            amount=Decimal("250.75"),
            date=date(2024, 1, 10),
            created_at=T0,
            updated_at=T0,
            tags=["mensal"],
        )
        document = record.to_document()
        assert document["category"] == "investimento-mensal"
        assert document["amount"] == 250.75
        assert document["month"] == "2024-01"
        assert document["date"] == "2024-01-10"
        assert "createdAt" in document and "updatedAt" in document
        # Serializable as-is
        json.dumps(document)

    def test_month_of(self):
        """month_of returns the YYYY-MM bucket of a date."""
        assert month_of(date(2023, 9, 3)) == "2023-09"


class TestInvestmentModels:
    """Tests for investment models."""

    def test_current_price_defaults_to_purchase_price(self):
        """A new position is valued at its purchase price."""
        investment = InvestmentInput(
            type=InvestmentType.TESOURO,
            symbol="TESOURO-SELIC-2029",
            name="Tesouro Selic 2029",
            quantity=Decimal("1"),
            purchase_price=Decimal("14000"),
            purchase_date=date(2024, 1, 2),
        )
        assert investment.current_price == Decimal("14000")

    @pytest.mark.parametrize("field", ["quantity", "purchase_price"])
    def test_rejects_non_positive_values(self, field):
        """Quantity and purchase price must be positive."""
        fields = {
            "type": "acao",
            "symbol": "ITUB4.SA",
            "name": "Itaú PN",
            "quantity": Decimal("10"),
            "purchase_price": Decimal("25"),
            "purchase_date": date(2024, 1, 2),
        }
        fields[field] = Decimal("0")
        with pytest.raises(ValidationError):
            InvestmentInput(**fields)

    def test_rejects_negative_current_price(self):
        """currentPrice may be zero but never negative."""
        with pytest.raises(ValidationError):
            InvestmentInput(
                type="cotas",
                symbol="HGLG11.SA",
                name="CSHG Logística",
                quantity=Decimal("3"),
                purchase_price=Decimal("160"),
                current_price=Decimal("-1"),
                purchase_date=date(2024, 1, 2),
            )

    def test_investment_values(self):
        """Purchase value, current value and gain follow quantity * price."""
        investment = Investment(
            id="1_abc",
            type="acao",
            symbol="PETR4.SA",
            name="Petrobras PN",
            quantity=Decimal("10"),
            purchase_price=Decimal("20"),
            current_price=Decimal("25"),
            purchase_date=date(2023, 6, 1),
            last_updated=T0,
        )
        assert investment.purchase_value == Decimal("200")
        assert investment.current_value == Decimal("250")
        assert investment.gain == Decimal("50")


class TestDerivedModels:
    """Tests for snapshot and result models."""

    def test_consolidation_rejects_bad_month(self):
        """Consolidation months must be YYYY-MM."""
        with pytest.raises(ValidationError):
            MonthlyConsolidation(
                month="2024-13",
                total_despesas=0,
                total_receitas=0,
                investimento_mensal=0,
                total_investimentos=0,
                patrimonio=0,
                resultado=0,
                created_at=T0,
            )

    def test_stock_quote_defaults(self):
        """Numeric quote fields default to zero."""
        quote = StockQuote(symbol="PETR4.SA", last_updated=T0)
        assert quote.price == 0
        assert quote.change == 0
        assert quote.change_percent == 0

    def test_snapshot_document_keys(self):
        """The export document uses the camelCase exportDate key."""
        document = LedgerSnapshot(export_date=T0).to_document()
        assert set(document) == {"records", "investments", "consolidations", "exportDate"}

    def test_import_result_flags(self):
        """success tracks errors; has_collections tracks parsed collections."""
        assert ImportResult().success
        assert not ImportResult().has_collections
        assert ImportResult(records=[]).has_collections
        assert not ImportResult(errors=["records: bad"]).success


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_ADDED,
            entity_type="record",
            entity_id="1705320000000_abc123def",
            description="Record added to despesas",
        )
        assert event.event_type == AuditEventType.RECORD_ADDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to a structured log dict."""
        event = AuditEvent(
            event_type=AuditEventType.STORE_CLEARED,
            severity=AuditSeverity.WARNING,
            description="All ledger collections cleared",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "store_cleared"
        assert log_dict["severity"] == "warning"
        assert "timestamp" in log_dict

    def test_audit_event_builder_record_added(self):
        """Test the record_added builder."""
        event = AuditEventBuilder.record_added("1_abc", "despesas", "100")
        assert event.event_type == AuditEventType.RECORD_ADDED
        assert event.entity_id == "1_abc"
        assert event.details == {"category": "despesas", "amount": "100"}

    def test_audit_event_builder_entity_updated(self):
        """Updates pick the event type from the entity type."""
        record_event = AuditEventBuilder.entity_updated("record", "1_a", ["amount", "date"])
        investment_event = AuditEventBuilder.entity_updated("investment", "2_b", ["current_price"])
        assert record_event.event_type == AuditEventType.RECORD_UPDATED
        assert record_event.details["fields"] == ["amount", "date"]
        assert investment_event.event_type == AuditEventType.INVESTMENT_UPDATED

    def test_audit_event_builder_partial_refresh_is_warning(self):
        """A refresh that missed some prices is flagged."""
        assert AuditEventBuilder.prices_refreshed(3, 3).severity == AuditSeverity.INFO
        assert AuditEventBuilder.prices_refreshed(3, 1).severity == AuditSeverity.WARNING

    def test_audit_event_builder_import_failed(self):
        """The first import error becomes the error message."""
        event = AuditEventBuilder.import_failed(["records: 2 validation error(s)"])
        assert event.error_message == "records: 2 validation error(s)"
        assert event.severity == AuditSeverity.WARNING


class TestLedgerCategories:
    """Tests for category and type enumerations."""

    def test_category_values(self):
        """Category values match the persisted strings."""
        assert [c.value for c in FinancialCategory] == [
            "despesas",
            "receitas",
            "investimento-mensal",
            "investimentos",
        ]

    def test_investment_type_values(self):
        """Investment type values match the persisted strings."""
        assert {t.value for t in InvestmentType} == {"acao", "cotas", "cdi", "tesouro"}
