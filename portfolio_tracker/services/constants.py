# portfolio_tracker/services/constants.py
"""
Centralized constants for the portfolio tracker services.

Usage:
    from portfolio_tracker.services.constants import (
        PRICE_STALENESS_SECONDS,
        ALL_PORTFOLIOS_ID,
    )
"""

from decimal import Decimal

from portfolio_tracker.models import AssetType


# =============================================================================
# PRICE STALENESS
# =============================================================================

# How long a cached quote is reused before the provider is asked again.
# Crypto trades around the clock and moves fast; simple assets never hit a
# provider at all, so their interval only bounds the cached parity quote.
PRICE_STALENESS_SECONDS: dict[AssetType, int] = {
    AssetType.CRYPTO: 5 * 60,
    AssetType.BITCOIN: 5 * 60,
    AssetType.STOCK: 15 * 60,
    AssetType.ETF: 15 * 60,
    AssetType.COMMODITY: 15 * 60,
    AssetType.BOND: 60 * 60,
    AssetType.CASH: 24 * 60 * 60,
    AssetType.REAL_ESTATE: 24 * 60 * 60,
    AssetType.OTHER: 24 * 60 * 60,
}


# =============================================================================
# AGGREGATION
# =============================================================================

ALL_PORTFOLIOS_ID: str = "all"
ALL_PORTFOLIOS_NAME: str = "All Portfolios"

# Used when no portfolio exists to borrow a display currency from
DEFAULT_DISPLAY_CURRENCY: str = "EUR"

# Label of the allocation bucket holding assets without a category
UNCATEGORIZED_LABEL: str = "Uncategorized"


# =============================================================================
# DECIMAL PRECISION
# =============================================================================

# Allocation percentages are reported to two decimal places; gain
# percentages keep full precision
PERCENTAGE_PRECISION: Decimal = Decimal("0.01")

HUNDRED: Decimal = Decimal("100")
ZERO: Decimal = Decimal("0")


# =============================================================================
# ASSET TYPE DISPLAY
# =============================================================================

ASSET_TYPE_LABELS: dict[AssetType, str] = {
    AssetType.STOCK: "Stocks",
    AssetType.ETF: "ETFs",
    AssetType.BITCOIN: "Bitcoin",
    AssetType.CRYPTO: "Crypto",
    AssetType.BOND: "Bonds",
    AssetType.COMMODITY: "Commodities",
    AssetType.CASH: "Cash",
    AssetType.REAL_ESTATE: "Real Estate",
    AssetType.OTHER: "Other",
}

ASSET_TYPE_COLORS: dict[AssetType, str] = {
    AssetType.STOCK: "#007AFF",
    AssetType.ETF: "#5856D6",
    AssetType.BITCOIN: "#FF9500",
    AssetType.CRYPTO: "#00E5FF",
    AssetType.BOND: "#8E9AAF",
    AssetType.COMMODITY: "#FFCC00",
    AssetType.CASH: "#00B140",
    AssetType.REAL_ESTATE: "#FF2D55",
    AssetType.OTHER: "#AF52DE",
}
