"""
Quote Sources

DESIGN DECISION: The quote cache depends on a tiny boundary - "give me the
raw quote payload for this symbol" - so the external provider is swappable:
1. HttpQuoteSource: a JSON endpoint answering GET ?symbol=...
2. MockQuoteSource: deterministic demo prices, no network

Payloads are UNTRUSTED. Sources only fetch and report errors; turning a
payload into a StockQuote (with 0 for anything missing) is the cache's job.
"""

import asyncio
import random
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


class QuoteError(Exception):
    """Base exception for quote fetching."""
    pass


class QuoteFetchError(QuoteError):
    """Transport failure or non-success response."""
    pass


class QuoteSourceError(QuoteError):
    """The source answered, but reported an error for the symbol."""

    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        super().__init__(f"{symbol}: {message}")


class QuoteSource(ABC):
    """Request-by-symbol price capability."""

    @abstractmethod
    async def fetch(self, symbol: str) -> dict[str, Any]:
        """
        Fetch the raw payload for one symbol.

        Returns:
            A dict shaped like {symbol, price, change, changePercent}.
            Any field may be missing.

        Raises:
            QuoteFetchError: Network failure or non-success status
            QuoteSourceError: The source reported an error payload
        """
        pass


class HttpQuoteSource(QuoteSource):
    """
    Quote source backed by an HTTP JSON endpoint.

    The blocking request runs in a worker thread so several symbols can be
    fetched concurrently from the event loop. Each worker thread gets its own
    requests.Session; an injected session is used as-is from every thread.
    """

    def __init__(
        self,
        api_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._api_url = api_url
        self._timeout = timeout_seconds
        self._session = session
        self._local = threading.local()

    def _thread_session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    @retry(
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _get(self, symbol: str) -> requests.Response:
        return self._thread_session().get(
            self._api_url,
            params={"symbol": symbol},
            timeout=self._timeout,
        )

    def _fetch_sync(self, symbol: str) -> dict[str, Any]:
        try:
            response = self._get(symbol)
        except requests.RequestException as e:
            raise QuoteFetchError(f"Request for {symbol} failed: {e}")

        if not response.ok:
            raise QuoteFetchError(
                f"Quote API responded with status {response.status_code} for {symbol}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise QuoteFetchError(f"Quote API returned invalid JSON for {symbol}: {e}")

        if not isinstance(data, dict):
            raise QuoteSourceError(symbol, "payload is not an object")
        if data.get("error"):
            raise QuoteSourceError(symbol, str(data["error"]))
        return data

    async def fetch(self, symbol: str) -> dict[str, Any]:
        return await asyncio.to_thread(self._fetch_sync, symbol)


# Approximate reference prices for common B3 tickers
MOCK_BASE_PRICES: dict[str, float] = {
    "PETR4.SA": 35.50,
    "VALE3.SA": 65.80,
    "ITUB4.SA": 25.30,
    "BBDC4.SA": 18.90,
    "ABEV3.SA": 12.40,
    "WEGE3.SA": 45.20,
    "MGLU3.SA": 8.50,
    "VVAR3.SA": 4.20,
    "GGBR4.SA": 22.10,
    "USIM5.SA": 8.80,
}


class MockQuoteSource(QuoteSource):
    """
    Demo quote source.

    Prices vary up to 5% either way around a reference price. Unknown
    symbols get a reference price between 10 and 110. Pass a seeded
    random.Random for reproducible output.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self.calls: list[str] = []

    def _base_price(self, symbol: str) -> float:
        if symbol in MOCK_BASE_PRICES:
            return MOCK_BASE_PRICES[symbol]
        return self._rng.random() * 100 + 10

    async def fetch(self, symbol: str) -> dict[str, Any]:
        self.calls.append(symbol)
        base = self._base_price(symbol)
        variation = (self._rng.random() - 0.5) * 0.1
        return {
            "symbol": symbol,
            "price": round(base * (1 + variation), 2),
            "change": round(base * variation, 2),
            "changePercent": round(variation * 100, 2),
        }
