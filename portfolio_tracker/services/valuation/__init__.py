# portfolio_tracker/services/valuation/__init__.py
"""
Valuation package.

This package turns transactions, prices and exchange rates into statistics:
- Open lots per asset (lots.py)
- Per-asset valuation, per-lot valuation and realized gains (calculators.py)
- Portfolio and All Portfolios totals (aggregation.py)
- Allocation by type and by category (allocation.py)

Usage:
    from portfolio_tracker.services.valuation import ValuationService

    service = ValuationService(store, price_service, currency_service)
    stats = await service.get_portfolio_stats(portfolio_id)

Architecture:
    valuation/
    ├── __init__.py      # This file - package exports
    ├── types.py         # Lot, AssetStats, PortfolioStats, allocation types
    ├── lots.py          # LotResolver
    ├── calculators.py   # Asset / lot / realized-gain calculators
    ├── aggregation.py   # PortfolioAggregator
    ├── allocation.py    # AllocationCalculator
    └── service.py       # ValuationService (orchestrator)

Data Flow:
    Transactions → LotResolver → Lots
    Lots + Quote + Rates → AssetValuationCalculator → AssetStats
    AssetStats[] → PortfolioAggregator → PortfolioStats
    AssetStats[] → AllocationCalculator → AllocationBreakdown
"""

from portfolio_tracker.services.valuation.aggregation import PortfolioAggregator
from portfolio_tracker.services.valuation.allocation import AllocationCalculator
from portfolio_tracker.services.valuation.calculators import (
    AssetValuationCalculator,
    LotValuationCalculator,
    RealizedGainCalculator,
    gain_percent,
)
from portfolio_tracker.services.valuation.lots import LotResolver
from portfolio_tracker.services.valuation.service import ValuationService
from portfolio_tracker.services.valuation.types import (
    AllocationBreakdown,
    AllocationSlice,
    AssetStats,
    Lot,
    LotResolution,
    LotValuation,
    PortfolioStats,
    RealizedGain,
    ValuationStatus,
)

__all__ = [
    # Main service
    "ValuationService",

    # Data types
    "Lot",
    "LotResolution",
    "LotValuation",
    "RealizedGain",
    "ValuationStatus",
    "AssetStats",
    "PortfolioStats",
    "AllocationSlice",
    "AllocationBreakdown",

    # Engines
    "LotResolver",
    "AssetValuationCalculator",
    "LotValuationCalculator",
    "RealizedGainCalculator",
    "PortfolioAggregator",
    "AllocationCalculator",
    "gain_percent",
]
