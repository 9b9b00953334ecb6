# portfolio_tracker/services/market_data/base.py
"""
Abstract interface for market data providers.

This module defines the contract every price provider follows. Using an
abstract base class allows for:
- Routing by asset type (Kraken for crypto, Yahoo Finance for the rest)
- Fake implementations for testing
- Consistent retry behavior across all providers

Design Principles:
- Interface Segregation: Only quote lookup (single or batched) and symbol search
- Dependency Inversion: PriceService depends on this abstraction
- DRY: Retry logic implemented once in the base class

Providers RAISE on failure (SymbolNotFoundError, ProviderUnavailableError,
RateLimitError). Turning failures into "no price" is PriceService's job.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from portfolio_tracker.models import AssetType
from portfolio_tracker.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    SymbolNotFoundError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class PriceQuote:
    """
    A single price observation.

    Attributes:
        price: Last traded price per unit
        currency: Currency the price is quoted in (ISO 4217, uppercase).
                  For crypto this is the quote currency that answered,
                  which may differ from the one requested.
        name: Display name reported by the provider, if any
        fetched_at: When the quote was obtained (UTC)
        from_cache: True when served from the cache rather than the provider
    """

    price: Decimal
    currency: str
    name: str | None = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    from_cache: bool = False

    def __post_init__(self) -> None:
        if not self.currency:
            raise ValueError("currency is required")
        if self.price < 0:
            raise ValueError(f"price cannot be negative, got {self.price}")


@dataclass(frozen=True)
class SymbolMatch:
    """
    A symbol search candidate.

    Attributes:
        symbol: Symbol to store on the asset (e.g. "AAPL", "BTC")
        name: Human-readable name
        asset_type: Best-guess asset type
        exchange: Exchange or venue, if known
        currency: Trading currency, if known
    """

    symbol: str
    name: str | None
    asset_type: AssetType
    exchange: str | None = None
    currency: str | None = None


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class MarketDataProvider(ABC):
    """
    Abstract base class for price providers.

    Retry Behavior:
        `_execute_with_retry` retries transient failures with exponential
        backoff. Subclasses (or tests) tune it through class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Retryable Exceptions:
        - ProviderUnavailableError: Network issues, timeouts, server errors
        - RateLimitError: API rate limit exceeded

    Non-Retryable Exceptions:
        - SymbolNotFoundError: Permanent failure (unknown symbol)
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1

    # True when get_quotes prices many symbols in one request
    SUPPORTS_BATCH_QUOTES: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs, errors and breaker names."""

    @abstractmethod
    async def get_quote(self, symbol: str, currency: str | None = None) -> PriceQuote:
        """
        Fetch the latest price for a symbol.

        Args:
            symbol: Symbol as stored on the asset
            currency: Requested quote currency. Providers that only quote in
                      the symbol's native currency ignore it.

        Returns:
            PriceQuote

        Raises:
            SymbolNotFoundError: Symbol (or symbol/currency pair) unknown
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """

    async def get_quotes(self, symbols: list[str], currency: str | None = None) -> dict[str, PriceQuote]:
        """
        Fetch quotes for several symbols in one currency.

        Returns symbol (uppercase) -> quote for the symbols that could be
        priced; the rest are simply absent. The default asks get_quote once
        per symbol; providers with a batch endpoint override it and set
        SUPPORTS_BATCH_QUOTES.
        """
        quotes: dict[str, PriceQuote] = {}
        for symbol in symbols:
            try:
                quotes[symbol.strip().upper()] = await self.get_quote(symbol, currency)
            except SymbolNotFoundError:
                continue
        return quotes

    async def search(self, query: str) -> list[SymbolMatch]:
        """Find symbols matching a free-text query. Default: no search support."""
        return []

    async def aclose(self) -> None:
        """Release network resources held by the provider."""

    async def _execute_with_retry(
            self,
            func: Callable[..., Awaitable[T]],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Await func with retry logic for transient failures.

        Raises:
            The last exception if all retries fail
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                result = await func(*args, **kwargs)
        return result
