"""
Quote Cache

Short-lived, per-symbol cache in front of a QuoteSource.

GUARANTEES:
- A quote younger than the TTL (5 minutes) is served without a fetch
- A failed fetch is NEVER an exception for the caller: it is "no quote"
- Failures are not cached; the next call retries immediately
- A batch request returns whatever resolved; one bad symbol never fails the rest

Entries are plain process state with no locking. Two concurrent refreshes
of the same symbol may both fetch; the last write wins, which is harmless.
"""

import asyncio
import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from pydantic import BaseModel

from src.audit import get_logger
from src.models.ledger import MONEY_CONTEXT, StockQuote
from src.services.quotes.sources import QuoteSource, QuoteSourceError

QUOTE_TTL = timedelta(minutes=5)

Clock = Callable[[], datetime]

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    """One cached quote and when it was fetched."""
    quote: StockQuote
    fetched_at: datetime


def safe_number(value: Any) -> Decimal:
    """
    Untrusted numeric field -> Decimal, with 0 for missing/NaN/garbage.

    Rounded to the significant digits a stored price may carry.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not number.is_finite():
        return Decimal("0")
    return MONEY_CONTEXT.plus(number)


def build_quote(symbol: str, payload: Any, fetched_at: datetime) -> StockQuote:
    """
    Turn a raw source payload into a StockQuote.

    Raises:
        QuoteSourceError: If the payload is not an object at all
    """
    if not isinstance(payload, dict):
        raise QuoteSourceError(symbol, "payload is not an object")
    reported = payload.get("symbol")
    return StockQuote(
        symbol=reported if isinstance(reported, str) and reported else symbol,
        price=safe_number(payload.get("price")),
        change=safe_number(payload.get("change")),
        change_percent=safe_number(payload.get("changePercent")),
        last_updated=fetched_at,
    )


class QuoteCache:
    """
    TTL cache wrapping a QuoteSource.

    Usage:
        cache = QuoteCache(HttpQuoteSource(url))
        quote = await cache.get_quote("PETR4.SA")
        quotes = await cache.get_multiple_quotes(["PETR4.SA", "VALE3.SA"])
    """

    def __init__(
        self,
        source: QuoteSource,
        clock: Clock = _utc_now,
        ttl: timedelta = QUOTE_TTL,
    ):
        self._source = source
        self._clock = clock
        self._ttl = ttl
        self._entries: dict[str, CacheEntry] = {}

    def _fresh_entry(self, symbol: str, now: datetime) -> Optional[CacheEntry]:
        entry = self._entries.get(symbol)
        if entry is None:
            return None
        if now - entry.fetched_at <= self._ttl:
            return entry
        del self._entries[symbol]
        return None

    async def get_quote(self, symbol: str) -> Optional[StockQuote]:
        """
        Cached quote for a symbol, fetching it when missing or stale.

        Returns:
            The quote, or None if it could not be fetched. Callers should
            treat None as "leave the existing price unchanged".
        """
        entry = self._fresh_entry(symbol, self._clock())
        if entry is not None:
            return entry.quote

        try:
            payload = await self._source.fetch(symbol)
            fetched_at = self._clock()
            quote = build_quote(symbol, payload, fetched_at)
        except Exception as e:
            logger.warning(
                "quote_fetch_failed",
                symbol=symbol,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        self._entries[symbol] = CacheEntry(quote=quote, fetched_at=fetched_at)
        return quote

    async def get_multiple_quotes(self, symbols: Iterable[str]) -> list[StockQuote]:
        """Fetch all symbols concurrently; return only the ones that resolved."""
        results = await asyncio.gather(
            *(self.get_quote(symbol) for symbol in symbols),
            return_exceptions=True,
        )
        return [r for r in results if isinstance(r, StockQuote)]

    @property
    def source(self) -> QuoteSource:
        return self._source

    def clear_cache(self) -> None:
        """Drop every cached quote."""
        self._entries.clear()

    def cached_symbols(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
