"""Quote services: external price sources, TTL cache, market hours."""

from src.services.quotes.cache import (
    QUOTE_TTL,
    CacheEntry,
    QuoteCache,
    build_quote,
    safe_number,
)
from src.services.quotes.market import (
    MarketStatus,
    default_symbols,
    format_symbol,
    is_market_open,
    market_status,
)
from src.services.quotes.sources import (
    HttpQuoteSource,
    MockQuoteSource,
    QuoteError,
    QuoteFetchError,
    QuoteSource,
    QuoteSourceError,
)

__all__ = [
    # Cache
    "QUOTE_TTL",
    "CacheEntry",
    "QuoteCache",
    "build_quote",
    "safe_number",
    # Market
    "MarketStatus",
    "default_symbols",
    "format_symbol",
    "is_market_open",
    "market_status",
    # Sources
    "HttpQuoteSource",
    "MockQuoteSource",
    "QuoteError",
    "QuoteFetchError",
    "QuoteSource",
    "QuoteSourceError",
]
