# portfolio_tracker/services/market_data/kraken.py
"""
Kraken public ticker provider for crypto assets.

Uses Kraken's unauthenticated REST endpoint:

    GET /0/public/Ticker?pair=XXBTZEUR

Kraken names pairs with legacy X (crypto) / Z (fiat) prefixes for the older
assets (XXBTZEUR) and plain concatenation for newer ones (SOLEUR). The known
irregular pairs are mapped explicitly; anything else is tried as
SYMBOL + CURRENCY.

Each call asks for exactly one quote currency (get_quotes batches several
symbols into one request). Falling back from
one currency to another is PriceService's job, not the provider's.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

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
from portfolio_tracker.services.market_data.kraken_assets import KRAKEN_ASSETS

logger = logging.getLogger(__name__)

TICKER_PATH = "/0/public/Ticker"

# Symbol -> {currency: pair} for pairs that don't follow SYMBOL+CURRENCY
KRAKEN_PAIRS: dict[str, dict[str, str]] = {
    "BTC": {"EUR": "XXBTZEUR", "USD": "XXBTZUSD"},
    "BITCOIN": {"EUR": "XXBTZEUR", "USD": "XXBTZUSD"},
    "ETH": {"EUR": "XETHZEUR", "USD": "XETHZUSD"},
    "SOL": {"EUR": "SOLEUR", "USD": "SOLUSD"},
    "XRP": {"EUR": "XXRPZEUR", "USD": "XXRPZUSD"},
    "ADA": {"EUR": "ADAEUR", "USD": "ADAUSD"},
    "DOT": {"EUR": "DOTEUR", "USD": "DOTUSD"},
    "DOGE": {"EUR": "XDGEUR", "USD": "XDGUSD"},
    "LTC": {"EUR": "XLTCZEUR", "USD": "XLTCZUSD"},
    "LINK": {"EUR": "LINKEUR", "USD": "LINKUSD"},
    "AVAX": {"EUR": "AVAXEUR", "USD": "AVAXUSD"},
    "ATOM": {"EUR": "ATOMEUR", "USD": "ATOMUSD"},
    "UNI": {"EUR": "UNIEUR", "USD": "UNIUSD"},
    "XLM": {"EUR": "XXLMZEUR", "USD": "XXLMZUSD"},
    "XMR": {"EUR": "XXMRZEUR", "USD": "XXMRZUSD"},
    "MATIC": {"EUR": "MATICEUR", "USD": "MATICUSD"},
}

SEARCH_LIMIT = 15


def kraken_pair(symbol: str, currency: str) -> str:
    """Return the Kraken pair name for symbol quoted in currency."""
    symbol = symbol.strip().upper()
    currency = currency.strip().upper()
    mapped = KRAKEN_PAIRS.get(symbol, {}).get(currency)
    if mapped:
        return mapped
    return f"{symbol}{currency}"


class KrakenProvider(MarketDataProvider):
    """
    Kraken implementation of MarketDataProvider.

    A fresh httpx.AsyncClient is opened per request; pass `transport`
    (e.g. httpx.MockTransport) to intercept traffic in tests.

    Example:
        provider = KrakenProvider()
        quote = await provider.get_quote("BTC", "EUR")
        print(quote.price, quote.currency)  # Decimal('61234.5') 'EUR'
    """

    SUPPORTS_BATCH_QUOTES = True

    def __init__(
            self,
            transport: httpx.AsyncBaseTransport | None = None,
            base_url: str | None = None,
            timeout: float | None = None,
    ) -> None:
        self._transport = transport
        self._base_url = (base_url or settings.kraken_base_url).rstrip("/")
        self._timeout = settings.http_timeout if timeout is None else timeout

    @property
    def name(self) -> str:
        return "kraken"

    # =========================================================================
    # QUOTES
    # =========================================================================

    async def get_quote(self, symbol: str, currency: str | None = None) -> PriceQuote:
        """
        Fetch the last trade price of symbol in currency (default USD).

        Raises:
            SymbolNotFoundError: Kraken has no such pair
            ProviderUnavailableError: Network error or 5xx
            RateLimitError: HTTP 429 or Kraken's rate-limit error
        """
        currency = (currency or "USD").strip().upper()
        return await self._execute_with_retry(self._fetch_quote, symbol, currency)

    async def get_quotes(self, symbols: list[str], currency: str | None = None) -> dict[str, PriceQuote]:
        """
        Price several symbols in one currency with a single Ticker request
        (pair=XXBTZEUR,XETHZEUR,...).

        Pairs missing from the response are absent from the result. Kraken
        rejects the whole request when any pair is unknown; that surfaces as
        SymbolNotFoundError and the caller falls back to single lookups.
        """
        currency = (currency or "USD").strip().upper()
        pairs: dict[str, str] = {}
        for symbol in symbols:
            pairs.setdefault(kraken_pair(symbol, currency), symbol.strip().upper())
        if not pairs:
            return {}

        result = await self._execute_with_retry(
            self._fetch_ticker, list(pairs), ",".join(pairs.values()), currency
        )

        quotes: dict[str, PriceQuote] = {}
        for pair_name, ticker in result.items():
            symbol = pairs.get(pair_name)
            price = self._ticker_price(ticker)
            if symbol is not None and price is not None:
                quotes[symbol] = PriceQuote(price=price, currency=currency)

        missing = sorted(set(pairs.values()) - set(quotes))
        if missing:
            logger.debug(f"Kraken batch in {currency} returned no price for {', '.join(missing)}")
        return quotes

    async def _fetch_quote(self, symbol: str, currency: str) -> PriceQuote:
        result = await self._fetch_ticker([kraken_pair(symbol, currency)], symbol, currency)

        # The result is keyed by Kraken's canonical pair name, which may not
        # match the name we asked for, so take the first entry.
        price = next((self._ticker_price(ticker) for ticker in result.values()), None)
        if price is None:
            raise SymbolNotFoundError(symbol=symbol, provider=self.name, currency=currency)
        return PriceQuote(price=price, currency=currency)

    async def _fetch_ticker(self, pairs: list[str], label: str, currency: str) -> dict[str, Any]:
        """One Ticker request; returns the "result" object keyed by pair name."""
        logger.debug(f"Fetching Kraken ticker {','.join(pairs)}")

        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get(TICKER_PATH, params={"pair": ",".join(pairs)})
            except httpx.RequestError as e:
                raise ProviderUnavailableError(provider=self.name, reason=f"Network error: {e}") from e

        if response.status_code == 429:
            raise RateLimitError(provider=self.name)
        if response.status_code >= 500:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"HTTP {response.status_code}",
            )
        if response.status_code != 200:
            raise SymbolNotFoundError(symbol=label, provider=self.name, currency=currency)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderUnavailableError(provider=self.name, reason="Malformed response") from e

        self._raise_for_api_errors(data.get("error") or [], label, currency)
        return data.get("result") or {}

    def _raise_for_api_errors(self, errors: list[str], symbol: str, currency: str) -> None:
        if not errors:
            return
        joined = "; ".join(str(e) for e in errors)
        lowered = joined.lower()
        if "unknown asset pair" in lowered or "invalid arguments" in lowered:
            raise SymbolNotFoundError(symbol=symbol, provider=self.name, currency=currency)
        if "rate limit" in lowered or "too many requests" in lowered:
            raise RateLimitError(provider=self.name)
        logger.warning(f"Kraken API error for {symbol}/{currency}: {joined}")
        raise ProviderUnavailableError(provider=self.name, reason=joined)

    @staticmethod
    def _ticker_price(ticker: Any) -> Decimal | None:
        """Last trade price ("c"[0]) of one ticker entry, None if unusable."""
        try:
            price = Decimal(str(ticker["c"][0]))
        except (KeyError, IndexError, TypeError, InvalidOperation):
            return None
        return price if price > 0 else None

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, query: str) -> list[SymbolMatch]:
        """
        Search the Kraken asset list by name or code.

        Ranking: exact code, code prefix, name prefix, then alphabetical.
        """
        query = query.strip()
        if not query:
            return []
        q_lower = query.lower()
        q_upper = query.upper()

        seen: set[str] = set()
        hits: list[tuple[str, str]] = []
        for name, code in KRAKEN_ASSETS:
            if code in seen:
                continue
            if q_lower in name.lower() or q_upper in code:
                seen.add(code)
                hits.append((name, code))

        def rank(hit: tuple[str, str]) -> tuple[int, int, int, str]:
            name, code = hit
            return (
                code != q_upper,
                not code.startswith(q_upper),
                not name.lower().startswith(q_lower),
                name.lower(),
            )

        hits.sort(key=rank)
        return [
            SymbolMatch(
                symbol=code,
                name=name,
                asset_type=AssetType.BITCOIN if code == "BTC" else AssetType.CRYPTO,
                exchange="Kraken",
            )
            for name, code in hits[:SEARCH_LIMIT]
        ]
