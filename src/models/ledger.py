"""
Core Data Models for the Financial Ledger

These models define the strict schemas for every entity the ledger
persists or derives. They are designed to:
1. Reject invalid amounts and dates before anything reaches the store
2. Keep the persisted JSON shape (camelCase keys) stable
3. Carry money as Decimal so aggregation never accumulates float drift

DESIGN DECISION: Python attributes are snake_case, wire keys are camelCase.
The alias generator does the mapping so persisted documents and export
files keep the same shape the ledger has always written.
"""

from datetime import date, datetime, timezone
from decimal import Context, Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


# Money is exact internally and a plain JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Significant digits a stored amount may carry; at most 15 survive a float exactly
MONEY_DIGITS = 15
MONEY_CONTEXT = Context(prec=MONEY_DIGITS)

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class FinancialCategory(str, Enum):
    """Top-level ledger buckets."""
    DESPESAS = "despesas"
    RECEITAS = "receitas"
    INVESTIMENTO_MENSAL = "investimento-mensal"
    INVESTIMENTOS = "investimentos"


class InvestmentType(str, Enum):
    """Kinds of held positions."""
    ACAO = "acao"
    COTAS = "cotas"
    CDI = "cdi"
    TESOURO = "tesouro"


class Trend(str, Enum):
    """Direction of a subcategory total compared to the previous month."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class LedgerModel(BaseModel):
    """Base for every ledger model: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict with wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


def month_of(value: date) -> str:
    """The YYYY-MM bucket a calendar date falls into."""
    return value.strftime("%Y-%m")


def as_utc(value: datetime) -> datetime:
    """Naive timestamps in persisted data are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class RecordInput(LedgerModel):
    """
    Caller-supplied fields for a new ledger entry.

    Identity and timestamps are NOT accepted here - the store assigns them.
    """
    category: FinancialCategory
    subcategory: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    amount: Money = Field(
        ..., gt=0, max_digits=MONEY_DIGITS, description="Amount in currency units"
    )
    date: date
    month: Optional[str] = Field(default=None, pattern=MONTH_PATTERN)
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def derive_month(self) -> "RecordInput":
        expected = month_of(self.date)
        if not self.month:
            self.month = expected
        elif self.month != expected:
            raise ValueError(
                f"Month {self.month} does not match date {self.date.isoformat()}"
            )
        return self


class FinancialRecord(RecordInput):
    """
    A single dated income/expense/contribution entry, as persisted.

    CRITICAL: `month` always equals the first 7 characters of `date`.
    """
    id: str = Field(..., min_length=1)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def validate_timestamps(self) -> "FinancialRecord":
        if as_utc(self.updated_at) < as_utc(self.created_at):
            raise ValueError("updatedAt cannot be before createdAt")
        return self


# =============================================================================
# INVESTMENTS
# =============================================================================

class InvestmentInput(LedgerModel):
    """
    Caller-supplied fields for a new position.

    current_price defaults to purchase_price when not given.
    """
    type: InvestmentType
    symbol: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)
    quantity: Money = Field(..., gt=0, max_digits=MONEY_DIGITS)
    purchase_price: Money = Field(..., gt=0, max_digits=MONEY_DIGITS)
    current_price: Optional[Money] = Field(default=None, ge=0, max_digits=MONEY_DIGITS)
    purchase_date: date
    sector: Optional[str] = Field(default=None, max_length=100)

    @model_validator(mode="after")
    def default_current_price(self) -> "InvestmentInput":
        if self.current_price is None:
            self.current_price = self.purchase_price
        return self


class Investment(InvestmentInput):
    """A held position, as persisted."""
    id: str = Field(..., min_length=1)
    current_price: Money = Field(..., ge=0, max_digits=MONEY_DIGITS)
    last_updated: datetime

    @property
    def purchase_value(self) -> Decimal:
        return self.quantity * self.purchase_price

    @property
    def current_value(self) -> Decimal:
        return self.quantity * self.current_price

    @property
    def gain(self) -> Decimal:
        return self.quantity * (self.current_price - self.purchase_price)


# =============================================================================
# DERIVED SNAPSHOTS
# =============================================================================

class MonthlyConsolidation(LedgerModel):
    """
    Per-month financial snapshot.

    This is a CACHE: it can always be regenerated from records + investments.
    """
    month: str = Field(..., pattern=MONTH_PATTERN)
    total_despesas: Money
    total_receitas: Money
    investimento_mensal: Money
    total_investimentos: Money
    patrimonio: Money
    resultado: Money
    created_at: datetime


class StockQuote(LedgerModel):
    """An external price observation. Cache-only, never persisted as-is."""
    symbol: str
    price: Money = Decimal("0")
    change: Money = Decimal("0")
    change_percent: Money = Decimal("0")
    last_updated: datetime


class CategorySummary(LedgerModel):
    """One subcategory's share of a category in a month."""
    name: str
    total: Money
    count: int = Field(ge=0)
    percentage: Money
    trend: Trend


class ChartData(LedgerModel):
    """One month's point on the evolution chart."""
    month: str = Field(..., description="Short display label, e.g. 'jan. de 24'")
    despesas: Money
    receitas: Money
    resultado: Money
    investimentos: Money


class DashboardMetrics(LedgerModel):
    """Headline numbers for the dashboard."""
    current_balance: Money
    monthly_growth: Money
    investment_return: Money
    savings_rate: Money
    top_expense_category: str
    top_income_source: str


# =============================================================================
# EXPORT / IMPORT DOCUMENT
# =============================================================================

class LedgerSnapshot(LedgerModel):
    """The transportable export document."""
    records: list[FinancialRecord] = Field(default_factory=list)
    investments: list[Investment] = Field(default_factory=list)
    consolidations: list[MonthlyConsolidation] = Field(default_factory=list)
    export_date: datetime


class ImportResult(BaseModel):
    """
    Result of parsing an import document.

    A collection is None when the document did not carry it (left untouched)
    or when it could not be parsed (listed in `errors`).
    """
    records: Optional[list[FinancialRecord]] = None
    investments: Optional[list[Investment]] = None
    consolidations: Optional[list[MonthlyConsolidation]] = None
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def has_collections(self) -> bool:
        return any(
            c is not None
            for c in (self.records, self.investments, self.consolidations)
        )
