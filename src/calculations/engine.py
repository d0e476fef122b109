"""
Calculation Engine

DESIGN DECISION: Every derivation here is a PURE function of the snapshots
it is given. The engine never reads the store, and only
`generate_monthly_consolidation` reads a clock (for `createdAt`), which the
caller may pass in.

DIVISION POLICY: every ratio guards its zero denominator with an explicit 0.
An empty ledger is a normal state, not an error.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from src.calculations.formatting import DEFAULT_LOCALE, format_month_short
from src.models.ledger import (
    CategorySummary,
    ChartData,
    DashboardMetrics,
    FinancialCategory,
    FinancialRecord,
    Investment,
    InvestmentType,
    MonthlyConsolidation,
    Trend,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Shown when a month has no records for a category
NO_CATEGORY = "Nenhuma"

CategoryLike = Union[FinancialCategory, str]


# =============================================================================
# Totals
# =============================================================================

def sum_records(records: Iterable[FinancialRecord]) -> Decimal:
    """Sum of `amount` over all records."""
    return sum((r.amount for r in records), ZERO)


def sum_by_category(records: Iterable[FinancialRecord], category: CategoryLike) -> Decimal:
    return sum_records(r for r in records if r.category == category)


def sum_by_subcategory(records: Iterable[FinancialRecord], subcategory: str) -> Decimal:
    return sum_records(r for r in records if r.subcategory == subcategory)


def sum_by_month(records: Iterable[FinancialRecord], month: str) -> Decimal:
    return sum_records(r for r in records if r.month == month)


def records_for_month(records: Iterable[FinancialRecord], month: str) -> list[FinancialRecord]:
    return [r for r in records if r.month == month]


# =============================================================================
# Investments
# =============================================================================

def investment_value(investments: Iterable[Investment]) -> Decimal:
    """Portfolio value at current prices: sum of quantity * currentPrice."""
    return sum((i.current_value for i in investments), ZERO)


def investment_value_by_type(
    investments: Iterable[Investment],
    investment_type: Union[InvestmentType, str],
) -> Decimal:
    return investment_value(i for i in investments if i.type == investment_type)


def investment_gain(investments: Iterable[Investment]) -> Decimal:
    """Unrealized gain: sum of quantity * (currentPrice - purchasePrice)."""
    return sum((i.gain for i in investments), ZERO)


def investment_gain_percent(investments: Iterable[Investment]) -> Decimal:
    """
    Gain as a percentage of the amount paid.

    0 when nothing was paid (empty portfolio).
    """
    investments = list(investments)
    cost = sum((i.purchase_value for i in investments), ZERO)
    if cost == 0:
        return ZERO
    return investment_gain(investments) / cost * HUNDRED


# =============================================================================
# Consolidation
# =============================================================================

def generate_monthly_consolidation(
    records: Iterable[FinancialRecord],
    investments: Iterable[Investment],
    month: str,
    now: Optional[datetime] = None,
) -> MonthlyConsolidation:
    """
    Build the consolidation for one month.

    Safe to regenerate at any time: with the same inputs the totals are
    identical and only `createdAt` moves with the clock.

    Invariants:
        patrimonio == totalInvestimentos + investimentoMensal
        resultado  == totalReceitas - totalDespesas
    """
    month_records = records_for_month(records, month)

    total_despesas = sum_by_category(month_records, FinancialCategory.DESPESAS)
    total_receitas = sum_by_category(month_records, FinancialCategory.RECEITAS)
    investimento_mensal = sum_by_category(
        month_records, FinancialCategory.INVESTIMENTO_MENSAL
    )
    total_investimentos = investment_value(investments)

    return MonthlyConsolidation(
        month=month,
        total_despesas=total_despesas,
        total_receitas=total_receitas,
        investimento_mensal=investimento_mensal,
        total_investimentos=total_investimentos,
        patrimonio=total_investimentos + investimento_mensal,
        resultado=total_receitas - total_despesas,
        created_at=now or datetime.now(timezone.utc),
    )


# =============================================================================
# Category summaries
# =============================================================================

def _trend(current: Decimal, previous: Decimal) -> Trend:
    if previous > 0:
        if current > previous:
            return Trend.UP
        if current < previous:
            return Trend.DOWN
        return Trend.STABLE
    # No previous data for this subcategory
    return Trend.UP if current > 0 else Trend.STABLE


def generate_category_summary(
    records: Iterable[FinancialRecord],
    category: CategoryLike,
    current_month: str,
    previous_month: Optional[str] = None,
) -> list[CategorySummary]:
    """
    Break one category's month down by subcategory, largest first.

    Each entry carries its share of the category total and its trend
    against `previous_month` (when given).
    """
    records = list(records)
    current = [
        r for r in records
        if r.category == category and r.month == current_month
    ]
    previous = [
        r for r in records
        if previous_month and r.category == category and r.month == previous_month
    ]

    category_total = sum_records(current)

    # Group in first-seen order so ties keep a stable order after sorting
    groups: dict[str, list[FinancialRecord]] = {}
    for record in current:
        groups.setdefault(record.subcategory, []).append(record)

    summaries = []
    for name, group in groups.items():
        total = sum_records(group)
        summaries.append(CategorySummary(
            name=name,
            total=total,
            count=len(group),
            percentage=(total / category_total * HUNDRED) if category_total > 0 else ZERO,
            trend=_trend(total, sum_by_subcategory(previous, name)),
        ))

    summaries.sort(key=lambda s: s.total, reverse=True)
    return summaries


# =============================================================================
# Charts and dashboard
# =============================================================================

def generate_chart_data(
    records: Iterable[FinancialRecord],
    months: Sequence[str],
    locale: str = DEFAULT_LOCALE,
) -> list[ChartData]:
    """One point per requested month, in the order given."""
    records = list(records)
    points = []
    for month in months:
        month_records = records_for_month(records, month)
        despesas = sum_by_category(month_records, FinancialCategory.DESPESAS)
        receitas = sum_by_category(month_records, FinancialCategory.RECEITAS)
        points.append(ChartData(
            month=format_month_short(month, locale=locale),
            despesas=despesas,
            receitas=receitas,
            resultado=receitas - despesas,
            investimentos=sum_by_category(
                month_records, FinancialCategory.INVESTIMENTO_MENSAL
            ),
        ))
    return points


def generate_dashboard_metrics(
    records: Iterable[FinancialRecord],
    investments: Iterable[Investment],
    current_month: str,
    previous_month: Optional[str] = None,
) -> DashboardMetrics:
    """
    Headline numbers for `current_month`.

    monthlyGrowth is 0 unless the previous balance was strictly positive;
    growth from a zero or negative base is not meaningful.
    """
    records = list(records)
    current = records_for_month(records, current_month)
    previous = records_for_month(records, previous_month) if previous_month else []

    current_receitas = sum_by_category(current, FinancialCategory.RECEITAS)
    current_balance = current_receitas - sum_by_category(current, FinancialCategory.DESPESAS)
    previous_balance = (
        sum_by_category(previous, FinancialCategory.RECEITAS)
        - sum_by_category(previous, FinancialCategory.DESPESAS)
    )

    monthly_growth = (
        (current_balance - previous_balance) / previous_balance * HUNDRED
        if previous_balance > 0
        else ZERO
    )

    contribution = sum_by_category(current, FinancialCategory.INVESTIMENTO_MENSAL)
    savings_rate = contribution / current_receitas * HUNDRED if current_receitas > 0 else ZERO

    expenses = generate_category_summary(current, FinancialCategory.DESPESAS, current_month)
    income = generate_category_summary(current, FinancialCategory.RECEITAS, current_month)

    return DashboardMetrics(
        current_balance=current_balance,
        monthly_growth=monthly_growth,
        investment_return=investment_gain_percent(investments),
        savings_rate=savings_rate,
        top_expense_category=expenses[0].name if expenses else NO_CATEGORY,
        top_income_source=income[0].name if income else NO_CATEGORY,
    )
