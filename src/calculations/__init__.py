"""Calculation engine: pure derivations over ledger snapshots."""

from src.calculations.engine import (
    NO_CATEGORY,
    generate_category_summary,
    generate_chart_data,
    generate_dashboard_metrics,
    generate_monthly_consolidation,
    investment_gain,
    investment_gain_percent,
    investment_value,
    investment_value_by_type,
    records_for_month,
    sum_by_category,
    sum_by_month,
    sum_by_subcategory,
    sum_records,
)
from src.calculations.formatting import (
    format_currency,
    format_month,
    format_month_short,
    format_percent,
)
from src.calculations.months import (
    current_month,
    last_n_months,
    months_range,
    next_month,
    parse_month,
    previous_month,
)

__all__ = [
    # Engine
    "NO_CATEGORY",
    "generate_category_summary",
    "generate_chart_data",
    "generate_dashboard_metrics",
    "generate_monthly_consolidation",
    "investment_gain",
    "investment_gain_percent",
    "investment_value",
    "investment_value_by_type",
    "records_for_month",
    "sum_by_category",
    "sum_by_month",
    "sum_by_subcategory",
    "sum_records",
    # Formatting
    "format_currency",
    "format_month",
    "format_month_short",
    "format_percent",
    # Months
    "current_month",
    "last_n_months",
    "months_range",
    "next_month",
    "parse_month",
    "previous_month",
]
