"""
Locale-fixed number and month formatting.

Pure helpers; the default locale is Brazilian Portuguese with BRL, the
way every screen of the ledger displays money.
"""

from datetime import date
from decimal import Decimal
from typing import Union

from babel.dates import format_date
from babel.numbers import format_currency as _format_currency
from babel.numbers import format_percent as _format_percent

from src.calculations.months import parse_month

DEFAULT_LOCALE = "pt_BR"
DEFAULT_CURRENCY = "BRL"

Number = Union[Decimal, int, float]


def format_currency(
    value: Number,
    currency: str = DEFAULT_CURRENCY,
    locale: str = DEFAULT_LOCALE,
) -> str:
    """`1234.5` -> `R$ 1.234,50` (non-breaking space)."""
    return _format_currency(Decimal(str(value)), currency, locale=locale)


def format_percent(value: Number, locale: str = DEFAULT_LOCALE) -> str:
    """
    Format a percentage given in percent units.

    `12.5` -> `12,5%`. One to two fraction digits.
    """
    return _format_percent(
        Decimal(str(value)) / 100,
        format="#,##0.0#%",
        locale=locale,
    )


def _first_day(month: str) -> date:
    year, month_num = parse_month(month)
    return date(year, month_num, 1)


def format_month(month: str, locale: str = DEFAULT_LOCALE) -> str:
    """Long display, e.g. `janeiro de 2024`."""
    return format_date(_first_day(month), format="MMMM 'de' y", locale=locale)


def format_month_short(month: str, locale: str = DEFAULT_LOCALE) -> str:
    """Chart label, e.g. `jan. de 24`."""
    return format_date(_first_day(month), format="MMM 'de' yy", locale=locale)
