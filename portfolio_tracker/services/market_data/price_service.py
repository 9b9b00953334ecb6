# portfolio_tracker/services/market_data/price_service.py
"""
Price access layer.

PriceService is the single entry point for current prices. It routes each
lookup by asset type, applies per-type staleness through an injected TTL
cache, collapses concurrent lookups for the same key into one in-flight
task, and turns every provider failure into None.

Routing:
    cash / realEstate / other    -> parity quote (price 1), no provider call
    crypto / bitcoin             -> crypto provider (Kraken), trying the
                                    preferred currency, then EUR, then USD
    stock / etf / bond / commodity -> market provider (Yahoo Finance), quoted
                                    in the symbol's trading currency

Each provider sits behind its own circuit breaker. While a breaker is open,
lookups for that provider return None without touching the network.

prefetch_crypto() prices all crypto assets of a valuation pass with one
request per quote currency when the crypto provider supports it.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetType
from portfolio_tracker.services.cache import InMemoryTTLCache
from portfolio_tracker.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from portfolio_tracker.services.constants import PRICE_STALENESS_SECONDS
from portfolio_tracker.services.exceptions import MarketDataError, SymbolNotFoundError
from portfolio_tracker.services.market_data.base import (
    MarketDataProvider,
    PriceQuote,
    SymbolMatch,
)
from portfolio_tracker.services.protocols import TTLCache

logger = logging.getLogger(__name__)


def price_cache_key(symbol: str, asset_type: AssetType, currency: str | None = None) -> str:
    """
    Cache key for a quote lookup.

    Crypto keys include the requested currency because the same symbol is
    quoted differently per currency; market quotes come in one currency only.
    """
    key = f"{asset_type.value}:{symbol.strip().upper()}"
    if asset_type.is_crypto and currency:
        key = f"{key}:{currency.strip().upper()}"
    return key


def _unique(currencies: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for currency in currencies:
        code = currency.strip().upper()
        if code and code not in seen:
            seen.append(code)
    return seen


class PriceService:
    """
    Cached, de-duplicated, failure-tolerant price lookups.

    Example:
        service = PriceService(YahooFinanceProvider(), KrakenProvider())
        quote = await service.get_price("AAPL", AssetType.STOCK, "EUR")
        if quote is None:
            ...  # price pending
    """

    def __init__(
            self,
            market_provider: MarketDataProvider,
            crypto_provider: MarketDataProvider,
            cache: TTLCache[PriceQuote] | None = None,
            fallback_currencies: Iterable[str] | None = None,
            breakers: dict[str, CircuitBreaker] | None = None,
    ) -> None:
        self._market = market_provider
        self._crypto = crypto_provider
        self._cache: TTLCache[PriceQuote] = cache if cache is not None else InMemoryTTLCache()
        self._fallback_currencies = _unique(
            settings.crypto_fallback_currencies if fallback_currencies is None else fallback_currencies
        )
        self._breakers = dict(breakers or {})
        for provider in (market_provider, crypto_provider):
            breaker = self._breakers.setdefault(provider.name, self._default_breaker(provider.name))
            # An unknown symbol says nothing about provider health
            breaker.exclude(SymbolNotFoundError)
        self._in_flight: dict[str, asyncio.Task] = {}

        logger.info(
            f"PriceService initialized (market={market_provider.name}, "
            f"crypto={crypto_provider.name}, fallbacks={self._fallback_currencies})"
        )

    @staticmethod
    def _default_breaker(name: str) -> CircuitBreaker:
        return CircuitBreaker(
            name=name,
            failure_threshold=settings.breaker_failure_threshold,
            recovery_timeout=settings.breaker_recovery_timeout,
        )

    def breaker(self, provider_name: str) -> CircuitBreaker:
        return self._breakers[provider_name]

    # =========================================================================
    # PRICES
    # =========================================================================

    async def get_price(
            self,
            symbol: str,
            asset_type: AssetType | str,
            preferred_currency: str,
            force_refresh: bool = False,
    ) -> PriceQuote | None:
        """
        Get the current price for an asset.

        Args:
            symbol: Asset symbol (ignored for simple types)
            asset_type: Asset type, which selects the provider and staleness
            preferred_currency: Currency wanted for crypto quotes and used
                                as the parity currency for simple types
            force_refresh: Skip the cache read (the result is still cached)

        Returns:
            PriceQuote, or None when no provider could price the asset
        """
        asset_type = AssetType(asset_type)
        preferred_currency = preferred_currency.strip().upper()

        if asset_type.is_simple:
            return PriceQuote(price=Decimal(1), currency=preferred_currency)

        key = price_cache_key(symbol, asset_type, preferred_currency)

        if not force_refresh:
            entry = self._cache.get(key)
            if entry is not None:
                logger.debug(f"Price cache hit for {key}")
                return replace(entry.value, from_cache=True)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, symbol, asset_type, preferred_currency))
            self._in_flight[key] = task
            task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))
        else:
            logger.debug(f"Joining in-flight price lookup for {key}")

        # One caller giving up must not cancel the shared lookup
        return await asyncio.shield(task)

    async def _fetch_and_store(
            self,
            key: str,
            symbol: str,
            asset_type: AssetType,
            preferred_currency: str,
    ) -> PriceQuote | None:
        if asset_type.is_crypto:
            quote = await self._fetch_crypto(symbol, preferred_currency)
        else:
            quote = await self._fetch_from(self._market, symbol, None)

        if quote is not None:
            self._cache.set(key, quote, PRICE_STALENESS_SECONDS[asset_type])
        return quote

    async def _fetch_crypto(self, symbol: str, preferred_currency: str) -> PriceQuote | None:
        for currency in _unique([preferred_currency, *self._fallback_currencies]):
            quote = await self._fetch_from(self._crypto, symbol, currency)
            if quote is not None:
                if currency != preferred_currency:
                    logger.info(f"{symbol} priced in fallback currency {currency} (wanted {preferred_currency})")
                return quote
            if self._breakers[self._crypto.name].is_open:
                break
        return None

    async def _fetch_from(
            self,
            provider: MarketDataProvider,
            symbol: str,
            currency: str | None,
    ) -> PriceQuote | None:
        breaker = self._breakers[provider.name]
        label = f"{symbol}/{currency}" if currency else symbol
        try:
            return await breaker.call_async(provider.get_quote, symbol, currency)
        except SymbolNotFoundError:
            logger.warning(f"{provider.name} has no price for {label}")
        except CircuitBreakerOpen as e:
            logger.warning(f"Skipping {provider.name} lookup for {label}: {e}")
        except MarketDataError as e:
            logger.warning(f"{provider.name} lookup failed for {label}: {e}")
        except Exception:
            logger.exception(f"Unexpected error from {provider.name} for {label}")
        return None

    # =========================================================================
    # BATCHED CRYPTO PRICES
    # =========================================================================

    async def prefetch_crypto(
            self,
            requests: Iterable[tuple[str, AssetType | str, str]],
            force_refresh: bool = False,
    ) -> dict[tuple[str, AssetType, str], PriceQuote]:
        """
        Price many crypto assets with one provider request per currency.

        Args:
            requests: (symbol, asset_type, preferred_currency) per asset;
                      non-crypto entries are ignored
            force_refresh: Fetch even symbols with a fresh cached quote

        Returns:
            (SYMBOL, asset_type, CURRENCY) -> quote for the symbols the batch
            priced in their preferred currency. Those quotes are cached like
            single lookups; anything missing is left to get_price, which
            still walks the fallback currencies.
        """
        if not self._crypto.SUPPORTS_BATCH_QUOTES:
            return {}

        wanted: dict[str, dict[str, set[AssetType]]] = {}
        for symbol, asset_type, currency in requests:
            asset_type = AssetType(asset_type)
            if not asset_type.is_crypto:
                continue
            symbol = symbol.strip().upper()
            currency = currency.strip().upper()
            if not force_refresh and self._cache.get(price_cache_key(symbol, asset_type, currency)) is not None:
                continue
            wanted.setdefault(currency, {}).setdefault(symbol, set()).add(asset_type)

        found: dict[tuple[str, AssetType, str], PriceQuote] = {}
        for currency, symbols in wanted.items():
            # A single symbol costs one request either way
            if len(symbols) < 2:
                continue
            quotes = await self._fetch_batch(sorted(symbols), currency)
            for symbol, quote in quotes.items():
                for asset_type in symbols.get(symbol, ()):
                    key = price_cache_key(symbol, asset_type, currency)
                    self._cache.set(key, quote, PRICE_STALENESS_SECONDS[asset_type])
                    found[(symbol, asset_type, currency)] = quote
        return found

    async def _fetch_batch(self, symbols: list[str], currency: str) -> dict[str, PriceQuote]:
        breaker = self._breakers[self._crypto.name]
        label = f"{len(symbols)} symbols in {currency}"
        try:
            quotes = await breaker.call_async(self._crypto.get_quotes, symbols, currency)
        except SymbolNotFoundError:
            logger.info(f"{self._crypto.name} rejected batch of {label}; pricing one by one")
            return {}
        except CircuitBreakerOpen as e:
            logger.warning(f"Skipping {self._crypto.name} batch of {label}: {e}")
            return {}
        except MarketDataError as e:
            logger.warning(f"{self._crypto.name} batch of {label} failed: {e}")
            return {}
        except Exception:
            logger.exception(f"Unexpected error from {self._crypto.name} for batch of {label}")
            return {}

        logger.debug(f"{self._crypto.name} batch priced {len(quotes)}/{len(symbols)} symbols in {currency}")
        return quotes

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, query: str, asset_type: AssetType | str | None = None) -> list[SymbolMatch]:
        """
        Find symbols matching query.

        Crypto types search the crypto provider, market types the market
        provider; without a type both are searched (market results first).
        Simple types have nothing to search. Failures yield [].
        """
        query = query.strip()
        if not query:
            return []

        if asset_type is None:
            providers = [self._market, self._crypto]
        else:
            asset_type = AssetType(asset_type)
            if asset_type.is_simple:
                return []
            providers = [self._crypto] if asset_type.is_crypto else [self._market]

        matches: list[SymbolMatch] = []
        for provider in providers:
            try:
                matches.extend(await self._breakers[provider.name].call_async(provider.search, query))
            except (MarketDataError, CircuitBreakerOpen) as e:
                logger.warning(f"{provider.name} search failed for '{query}': {e}")
        return matches

    async def aclose(self) -> None:
        await self._market.aclose()
        await self._crypto.aclose()
