# portfolio_tracker/services/market_data/yahoo.py
"""
Yahoo Finance price provider.

Implements MarketDataProvider with the yfinance library for stocks, ETFs,
bonds and commodities. Quotes are in the symbol's native trading currency
(e.g. USD for AAPL, EUR for SAP.DE); the requested currency is ignored.

Key features:
- All requests go through one FIFO RequestQueue, at least 200 ms apart
- yfinance is synchronous, so each request runs in a worker thread
- Error classification feeding the base-class retry policy

Limitations:
- Rate limits are not documented, but exist
- Prices may be delayed 15-20 minutes for some markets
"""

import asyncio
import logging
import math
from decimal import Decimal
from typing import Any

import yfinance as yf

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetType
from portfolio_tracker.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    SymbolNotFoundError,
)
from portfolio_tracker.services.market_data.base import (
    MarketDataProvider,
    PriceQuote,
    SymbolMatch,
)
from portfolio_tracker.services.market_data.request_queue import RequestQueue

logger = logging.getLogger(__name__)


class YahooFinanceProvider(MarketDataProvider):
    """
    Yahoo Finance implementation of MarketDataProvider.

    Retry Behavior (inherited from MarketDataProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on SymbolNotFoundError
        - A retry is re-queued behind requests that arrived meanwhile

    Example:
        provider = YahooFinanceProvider()
        quote = await provider.get_quote("AAPL")
        print(quote.price, quote.currency)  # Decimal('189.84') 'USD'
    """

    # Maps Yahoo quoteType values to our asset types
    QUOTE_TYPE_MAPPING: dict[str, AssetType] = {
        "EQUITY": AssetType.STOCK,
        "ETF": AssetType.ETF,
        "MUTUALFUND": AssetType.ETF,
        "CRYPTOCURRENCY": AssetType.CRYPTO,
        "BOND": AssetType.BOND,
        "FUTURE": AssetType.COMMODITY,
    }

    SEARCH_MAX_RESULTS: int = 10

    def __init__(
            self,
            queue: RequestQueue | None = None,
            min_request_interval: float | None = None,
    ) -> None:
        """
        Args:
            queue: Shared request queue (a private one is created if omitted)
            min_request_interval: Spacing for the private queue
                                  (defaults to settings.yahoo_min_request_interval)
        """
        interval = (
            settings.yahoo_min_request_interval
            if min_request_interval is None
            else min_request_interval
        )
        self._queue = queue or RequestQueue(min_interval=interval, name="yahoo")
        logger.info(f"YahooFinanceProvider initialized (min_interval={self._queue.min_interval}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    @property
    def queue(self) -> RequestQueue:
        return self._queue

    # =========================================================================
    # QUOTES
    # =========================================================================

    async def get_quote(self, symbol: str, currency: str | None = None) -> PriceQuote:
        """
        Fetch the latest price in the symbol's trading currency.

        Raises:
            SymbolNotFoundError: If Yahoo has no price for the symbol
            ProviderUnavailableError: If Yahoo Finance is unavailable
            RateLimitError: If Yahoo is throttling us
        """
        return await self._execute_with_retry(
            self._queue.submit, asyncio.to_thread, self._fetch_quote, symbol,
        )

    def _fetch_quote(self, symbol: str) -> PriceQuote:
        """Blocking quote fetch (runs in a worker thread)."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote for {symbol}")

        try:
            ticker = yf.Ticker(symbol)
            info = ticker.fast_info
            price = self._to_decimal(info.last_price)
            currency = info.currency
        except Exception as e:
            raise self._classify_error(e, symbol) from e

        if price is None or not currency:
            raise SymbolNotFoundError(symbol=symbol, provider=self.name)

        return PriceQuote(price=price, currency=str(currency).upper(), name=self._display_name(ticker, symbol))

    def _display_name(self, ticker: Any, symbol: str) -> str | None:
        """
        longName (or shortName) from the full info request.

        The name is optional, so a failed info request only costs the name.
        """
        try:
            info = ticker.info
        except Exception as e:
            logger.debug(f"No display name for {symbol}: {e}")
            return None
        if not isinstance(info, dict):
            return None
        name = info.get("longName") or info.get("shortName")
        if not isinstance(name, str) or not name.strip():
            return None
        return name.strip()

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, query: str) -> list[SymbolMatch]:
        """
        Search Yahoo Finance for symbols matching query.

        Raises:
            ProviderUnavailableError / RateLimitError on failure
        """
        query = query.strip()
        if not query:
            return []
        return await self._execute_with_retry(
            self._queue.submit, asyncio.to_thread, self._fetch_search, query,
        )

    def _fetch_search(self, query: str) -> list[SymbolMatch]:
        try:
            quotes = yf.Search(query, max_results=self.SEARCH_MAX_RESULTS, news_count=0).quotes
        except Exception as e:
            raise self._classify_error(e, query) from e

        matches: list[SymbolMatch] = []
        for quote in quotes or []:
            symbol = quote.get("symbol")
            if not symbol:
                continue
            matches.append(SymbolMatch(
                symbol=symbol,
                name=quote.get("longname") or quote.get("shortname") or symbol,
                asset_type=self._map_quote_type(quote.get("quoteType", "")),
                exchange=quote.get("exchDisp") or quote.get("exchange"),
            ))
        return matches

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _classify_error(self, error: Exception, symbol: str) -> Exception:
        """Map a yfinance/network error onto our exception hierarchy."""
        error_str = str(error).lower()
        if isinstance(error, KeyError) or "not found" in error_str or "no data" in error_str:
            return SymbolNotFoundError(symbol=symbol, provider=self.name)
        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.warning(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    def _map_quote_type(self, quote_type: str) -> AssetType:
        return self.QUOTE_TYPE_MAPPING.get(quote_type.upper(), AssetType.OTHER)

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None/non-positive."""
        if value is None:
            return None
        try:
            as_float = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(as_float) or as_float <= 0:
            return None
        return Decimal(str(value))
