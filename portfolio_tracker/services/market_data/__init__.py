# portfolio_tracker/services/market_data/__init__.py
"""
Market data package.

This package contains:
- Abstract interface for price providers (base.py)
- Yahoo Finance provider for stocks, ETFs, bonds and commodities (yahoo.py)
- Kraken provider for crypto (kraken.py)
- FIFO request pacing for Yahoo (request_queue.py)

PriceService (price_service.py) is imported from its module directly:

    from portfolio_tracker.services.market_data.price_service import PriceService

Architecture:
    MarketDataProvider (ABC)
    ├── YahooFinanceProvider
    └── KrakenProvider
"""

from portfolio_tracker.services.market_data.base import (
    MarketDataProvider,
    PriceQuote,
    SymbolMatch,
)
from portfolio_tracker.services.market_data.kraken import KrakenProvider
from portfolio_tracker.services.market_data.request_queue import RequestQueue
from portfolio_tracker.services.market_data.yahoo import YahooFinanceProvider

__all__ = [
    # Abstract interface
    "MarketDataProvider",
    # Data classes
    "PriceQuote",
    "SymbolMatch",
    # Concrete implementations
    "YahooFinanceProvider",
    "KrakenProvider",
    "RequestQueue",
]
