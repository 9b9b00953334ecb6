# portfolio_tracker/services/fx_rate_service.py
"""
Currency conversion layer: spot exchange rates with caching.

=============================================================================
FX RATE CONVENTION
=============================================================================

    rate = "1 from_currency = X to_currency"

Example:
    get_rate("USD", "EUR") == Decimal("0.92")

    Meaning: 1 USD = 0.92 EUR
    EUR_amount = USD_amount × rate

=============================================================================

This module handles:
- Fetching latest rates from the Frankfurter API (ECB reference rates)
- Caching rates for one hour, independently of prices
- Sharing one in-flight request between concurrent callers of the same pair
- Turning provider failures into None, never into a default rate of 1

Usage:
    service = CurrencyService(FrankfurterProvider())

    rate = await service.get_rate("USD", "EUR")       # Decimal or None
    eur = await service.convert(amount, "USD", "EUR")  # Decimal or None
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from portfolio_tracker.config import settings
from portfolio_tracker.services.cache import InMemoryTTLCache
from portfolio_tracker.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from portfolio_tracker.services.exceptions import FXProviderError, FXRateError, FXRateNotQuotedError
from portfolio_tracker.services.protocols import ExchangeRateProvider, TTLCache

logger = logging.getLogger(__name__)

# Returned by supported_currencies() when the provider cannot be reached
FALLBACK_CURRENCIES: tuple[str, ...] = ("USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD")


def rate_cache_key(from_currency: str, to_currency: str) -> str:
    return f"{from_currency.strip().upper()}:{to_currency.strip().upper()}"


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, FXProviderError) and exc.retryable


# =============================================================================
# FRANKFURTER PROVIDER
# =============================================================================

class FrankfurterProvider:
    """
    ExchangeRateProvider backed by https://api.frankfurter.app.

    GET /latest?from=USD&to=EUR returns {"base": "USD", "rates": {"EUR": 0.92}}.
    Transient failures are retried with exponential backoff.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10

    def __init__(
            self,
            transport: httpx.AsyncBaseTransport | None = None,
            base_url: str | None = None,
            timeout: float | None = None,
    ) -> None:
        self._transport = transport
        self._base_url = (base_url or settings.frankfurter_base_url).rstrip("/")
        self._timeout = settings.http_timeout if timeout is None else timeout

    @property
    def name(self) -> str:
        return "frankfurter"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def fetch_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Fetch the latest rate (1 from_currency = X to_currency).

        Raises:
            FXRateNotQuotedError: The provider has no rate for the pair
            FXProviderError: Any other provider failure (retryable when transient)
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(min=self.RETRY_MIN_WAIT, max=self.RETRY_MAX_WAIT),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                rate = await self._fetch_once(from_currency, to_currency)
        return rate

    async def _fetch_once(self, from_currency: str, to_currency: str) -> Decimal:
        async with self._client() as client:
            try:
                response = await client.get("/latest", params={"from": from_currency, "to": to_currency})
            except httpx.RequestError as e:
                raise FXProviderError(
                    provider=self.name,
                    reason=f"Network error: {e}",
                    base_currency=from_currency,
                    quote_currency=to_currency,
                ) from e

        # Frankfurter answers 404 (or 422) for a currency it does not quote
        if response.status_code in (404, 422):
            raise FXRateNotQuotedError(
                provider=self.name,
                reason=f"HTTP {response.status_code}",
                base_currency=from_currency,
                quote_currency=to_currency,
            )
        if response.status_code != 200:
            raise FXProviderError(
                provider=self.name,
                reason=f"HTTP {response.status_code}",
                base_currency=from_currency,
                quote_currency=to_currency,
                retryable=response.status_code == 429 or response.status_code >= 500,
            )

        try:
            raw = response.json()["rates"][to_currency]
            rate = Decimal(str(raw))
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            raise FXRateNotQuotedError(
                provider=self.name,
                reason=f"No rate for {from_currency}/{to_currency} in response",
                base_currency=from_currency,
                quote_currency=to_currency,
            ) from e

        if rate <= 0:
            raise FXRateNotQuotedError(
                provider=self.name,
                reason=f"Non-positive rate {rate}",
                base_currency=from_currency,
                quote_currency=to_currency,
            )
        return rate

    async def supported_currencies(self) -> list[str]:
        """ISO codes the provider quotes; a short default list if unreachable."""
        async with self._client() as client:
            try:
                response = await client.get("/currencies")
            except httpx.RequestError as e:
                logger.warning(f"Could not list Frankfurter currencies: {e}")
                return list(FALLBACK_CURRENCIES)

        if response.status_code != 200:
            logger.warning(f"Could not list Frankfurter currencies: HTTP {response.status_code}")
            return list(FALLBACK_CURRENCIES)
        return sorted(response.json().keys())


# =============================================================================
# CURRENCY SERVICE
# =============================================================================

class CurrencyService:
    """
    Cached, de-duplicated exchange rate lookups.

    Attributes:
        ttl_seconds: How long a fetched rate is reused

    Example:
        service = CurrencyService(FrankfurterProvider())
        rate = await service.get_rate("usd", "EUR")
        print(f"1 USD = {rate} EUR")
    """

    def __init__(
            self,
            provider: ExchangeRateProvider,
            cache: TTLCache[Decimal] | None = None,
            ttl_seconds: float | None = None,
            breaker: CircuitBreaker | None = None,
    ) -> None:
        self._provider = provider
        self._cache: TTLCache[Decimal] = cache if cache is not None else InMemoryTTLCache()
        self.ttl_seconds = settings.exchange_rate_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._breaker = breaker or CircuitBreaker(
            name=provider.name,
            failure_threshold=settings.breaker_failure_threshold,
            recovery_timeout=settings.breaker_recovery_timeout,
        )
        # One unquoted pair must not take every other pair down with it
        self._breaker.exclude(FXRateNotQuotedError)
        self._in_flight: dict[str, asyncio.Task] = {}
        logger.info(f"CurrencyService initialized (provider={provider.name}, ttl={self.ttl_seconds}s)")

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def get_rate(
            self,
            from_currency: str,
            to_currency: str,
            force_refresh: bool = False,
    ) -> Decimal | None:
        """
        Get the rate for 1 from_currency in to_currency.

        Same-currency pairs return 1 without any lookup. Returns None when
        the rate cannot be obtained.
        """
        from_currency = from_currency.strip().upper()
        to_currency = to_currency.strip().upper()
        if from_currency == to_currency:
            return Decimal(1)

        key = rate_cache_key(from_currency, to_currency)
        if not force_refresh:
            entry = self._cache.get(key)
            if entry is not None:
                logger.debug(f"Rate cache hit for {key}")
                return entry.value

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, from_currency, to_currency))
            self._in_flight[key] = task
            task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))

        return await asyncio.shield(task)

    async def _fetch_and_store(self, key: str, from_currency: str, to_currency: str) -> Decimal | None:
        try:
            rate = await self._breaker.call_async(self._provider.fetch_rate, from_currency, to_currency)
        except (FXRateError, CircuitBreakerOpen) as e:
            logger.warning(f"No exchange rate for {from_currency}/{to_currency}: {e}")
            return None
        except Exception:
            logger.exception(f"Unexpected error fetching {from_currency}/{to_currency}")
            return None

        self._cache.set(key, rate, self.ttl_seconds)
        return rate

    async def convert(
            self,
            amount: Decimal,
            from_currency: str,
            to_currency: str,
            force_refresh: bool = False,
    ) -> Decimal | None:
        """Convert amount; None if the rate is unavailable."""
        rate = await self.get_rate(from_currency, to_currency, force_refresh=force_refresh)
        if rate is None:
            return None
        return amount * rate
