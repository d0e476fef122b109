"""
Market helpers: symbol normalization and B3 trading hours.

No I/O here. Functions that need "now" take it as a parameter.
"""

import re
from datetime import datetime, time, timezone
from enum import Enum
from typing import Optional

import pytz

DEFAULT_MARKET_TIMEZONE = "America/Sao_Paulo"
DEFAULT_MARKET_SUFFIX = ".SA"

# Trading window, both ends inclusive (minute resolution)
MARKET_OPEN = time(10, 0)
MARKET_CLOSE = time(18, 0)

_TRAILING_DIGITS = re.compile(r"\d+$")

DEFAULT_SYMBOLS = [
    "PETR4.SA",  # Petrobras
    "VALE3.SA",  # Vale
    "ITUB4.SA",  # Itaú
    "BBDC4.SA",  # Bradesco
    "ABEV3.SA",  # Ambev
    "WEGE3.SA",  # WEG
    "MGLU3.SA",  # Magazine Luiza
    "VVAR3.SA",  # Via Varejo
    "GGBR4.SA",  # Gerdau
    "USIM5.SA",  # Usiminas
]


class MarketStatus(str, Enum):
    """Market state, with the label the dashboard shows."""
    OPEN = "open"
    CLOSED_WEEKEND = "closed_weekend"
    CLOSED = "closed"

    @property
    def label(self) -> str:
        return {
            MarketStatus.OPEN: "Mercado Aberto",
            MarketStatus.CLOSED_WEEKEND: "Mercado Fechado - Final de Semana",
            MarketStatus.CLOSED: "Mercado Fechado",
        }[self]


def is_local_market_symbol(symbol: str) -> bool:
    """B3 tickers end in digits (PETR4, VALE3, ITSA4...)."""
    return bool(_TRAILING_DIGITS.search(symbol))


def format_symbol(raw: str, suffix: str = DEFAULT_MARKET_SUFFIX) -> str:
    """
    Normalize a user-typed symbol.

    `" petr4 "` -> `"PETR4.SA"`; `"AAPL"` and `"PETR4.SA"` are left as they are.
    """
    symbol = raw.strip().upper()
    if "." not in symbol and is_local_market_symbol(symbol):
        return f"{symbol}{suffix}"
    return symbol


def default_symbols() -> list[str]:
    return list(DEFAULT_SYMBOLS)


def market_time(
    now: Optional[datetime] = None,
    tz_name: str = DEFAULT_MARKET_TIMEZONE,
) -> datetime:
    """`now` in the market's timezone. Naive datetimes are taken as UTC."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(pytz.timezone(tz_name))


def _is_weekend(local: datetime) -> bool:
    return local.weekday() >= 5


def is_market_open(
    now: Optional[datetime] = None,
    tz_name: str = DEFAULT_MARKET_TIMEZONE,
) -> bool:
    """Open Monday to Friday, 10:00 to 18:00 inclusive, market time."""
    local = market_time(now, tz_name)
    if _is_weekend(local):
        return False
    clock_time = local.time().replace(second=0, microsecond=0)
    return MARKET_OPEN <= clock_time <= MARKET_CLOSE


def market_status(
    now: Optional[datetime] = None,
    tz_name: str = DEFAULT_MARKET_TIMEZONE,
) -> MarketStatus:
    now = now or datetime.now(timezone.utc)
    if is_market_open(now, tz_name):
        return MarketStatus.OPEN
    if _is_weekend(market_time(now, tz_name)):
        return MarketStatus.CLOSED_WEEKEND
    return MarketStatus.CLOSED
