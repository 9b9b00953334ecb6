# portfolio_tracker/services/__init__.py
"""
Service layer.

Services:
- Have NO knowledge of the presentation layer
- Raise domain-specific exceptions (exceptions.py)
- Receive their collaborators through the constructor
- Are easily testable via dependency injection

Usage:
    from portfolio_tracker.services import (
        PortfolioStore,
        PriceService,
        CurrencyService,
        ValuationService,
    )

Architecture:
    services/
    ├── __init__.py            # This file - main exports
    ├── exceptions.py          # Domain exceptions
    ├── constants.py           # Staleness intervals, labels, colors
    ├── protocols.py           # Service interfaces (Protocol classes)
    ├── circuit_breaker.py     # Circuit breaker for external APIs
    ├── cache.py               # TTL caches (in-memory and SQL-backed)
    ├── fx_rate_service.py     # CurrencyService + Frankfurter provider
    ├── portfolio_store.py     # Local storage (StorageProvider)
    ├── market_data/           # Price providers and PriceService
    │   ├── base.py            # Abstract provider interface
    │   ├── yahoo.py           # Yahoo Finance implementation
    │   ├── kraken.py          # Kraken implementation
    │   ├── request_queue.py   # FIFO pacing for Yahoo
    │   └── price_service.py   # Routing, staleness, de-duplication
    └── valuation/             # Lots, valuation, aggregation, allocation
"""

from portfolio_tracker.services.cache import (
    InMemoryTTLCache,
    SqlExchangeRateCache,
    SqlPriceCache,
)
from portfolio_tracker.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from portfolio_tracker.services.exceptions import (
    AssetNotFoundError,
    CategoryNotFoundError,
    FXProviderError,
    FXRateNotQuotedError,
    FXRateError,
    ImmutableFieldError,
    InvalidLotReferenceError,
    MarketDataError,
    NotFoundError,
    PortfolioNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
    SellExceedsLotError,
    ServiceError,
    SymbolNotFoundError,
    TransactionNotFoundError,
    ValidationError,
)
from portfolio_tracker.services.fx_rate_service import CurrencyService, FrankfurterProvider
from portfolio_tracker.services.market_data.price_service import PriceService
from portfolio_tracker.services.portfolio_store import PortfolioStore
from portfolio_tracker.services.valuation import ValuationService

__all__ = [
    # Services
    "PortfolioStore",
    "PriceService",
    "CurrencyService",
    "FrankfurterProvider",
    "ValuationService",
    # Caches
    "InMemoryTTLCache",
    "SqlPriceCache",
    "SqlExchangeRateCache",
    # Resilience
    "CircuitBreaker",
    "CircuitBreakerOpen",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "SellExceedsLotError",
    "InvalidLotReferenceError",
    "ImmutableFieldError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "AssetNotFoundError",
    "TransactionNotFoundError",
    "CategoryNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "SymbolNotFoundError",
    "RateLimitError",
    "FXRateError",
    "FXProviderError",
    "FXRateNotQuotedError",
]
