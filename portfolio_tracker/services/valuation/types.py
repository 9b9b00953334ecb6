# portfolio_tracker/services/valuation/types.py
"""
Internal data types for the valuation engine.

These dataclasses are produced by the pure calculators and consumed by the
presentation layer. They are NOT Pydantic schemas - input validation lives
in portfolio_tracker/schemas.

Design Principles:
- Immutable where possible (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- Unknown is None, never zero: a missing price or rate makes the dependent
  amounts None and sets an explicit ValuationStatus
- Warnings accumulate for data quality tracking

Type Hierarchy:
    Lot              - Open remainder of one buy transaction
    LotResolution    - Open lots + sells that match no lot
    LotValuation     - Value and gain of one lot at the current price
    RealizedGain     - Gain locked in by one matched sell
    AssetStats       - Complete valuation for one asset
    PortfolioStats   - Aggregated valuation for a portfolio (or all of them)
    AllocationSlice  - One group of an allocation breakdown
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from portfolio_tracker.models import AssetType
from portfolio_tracker.services.constants import ALL_PORTFOLIOS_ID


# =============================================================================
# LOTS
# =============================================================================

@dataclass(frozen=True)
class Lot:
    """
    The unsold remainder of a single buy transaction.

    Lots are derived on every read from the transaction list and never
    persisted. A lot's id is the id of the buy that opened it, which is also
    the value sells carry in their lot_id.

    Attributes:
        id: Lot id (= buy transaction id)
        asset_id: Asset the lot belongs to
        buy_transaction_id: The buy transaction that opened the lot
        original_quantity: Quantity bought
        remaining_quantity: Quantity bought minus quantity sold against it
        purchase_price: Price per unit in the asset currency
        purchase_date: Date of the buy
        notes: Free-text notes from the buy
    """

    id: str
    asset_id: str
    buy_transaction_id: str
    original_quantity: Decimal
    remaining_quantity: Decimal
    purchase_price: Decimal
    purchase_date: datetime
    notes: str | None = None

    @property
    def sold_quantity(self) -> Decimal:
        return self.original_quantity - self.remaining_quantity

    @property
    def cost(self) -> Decimal:
        """Cost of the remaining units, asset currency."""
        return self.remaining_quantity * self.purchase_price


@dataclass
class LotResolution:
    """
    Output of LotResolver.resolve_with_diagnostics().

    Attributes:
        lots: Open lots in the order their buys were supplied
        unmatched_sells: Sells with no lot_id, or a lot_id naming no buy in
            the supplied transactions. They reduce no lot.
        sold_by_lot: Total quantity sold per lot id (closed lots included)
    """

    lots: list[Lot]
    unmatched_sells: list[Any] = field(default_factory=list)
    sold_by_lot: dict[str, Decimal] = field(default_factory=dict)

    @property
    def has_unmatched_sells(self) -> bool:
        return len(self.unmatched_sells) > 0


# =============================================================================
# STATUS
# =============================================================================

class ValuationStatus(str, enum.Enum):
    """
    Why an asset's value is (or is not) known.

    COMPLETE            - value known in the comparison currency
    PRICE_PENDING       - no quote available yet
    CONVERSION_PENDING  - a quote exists, but a currency rate needed to
                          express it (in the asset or comparison currency)
                          is missing
    """
    COMPLETE = "complete"
    PRICE_PENDING = "price_pending"
    CONVERSION_PENDING = "conversion_pending"


# =============================================================================
# PER-LOT AND PER-SELL RESULTS
# =============================================================================

@dataclass(frozen=True)
class LotValuation:
    """
    Lot-level value and unrealized gain, asset currency.

    current_value, gain and gain_percent are None while the asset's price
    in its own currency is unknown.
    """

    lot: Lot
    cost: Decimal
    current_value: Decimal | None
    gain: Decimal | None
    gain_percent: Decimal | None


@dataclass(frozen=True)
class RealizedGain:
    """
    Gain realized by one sell, asset currency.

    Formula:
        proceeds = quantity × sell_price
        cost_basis = quantity × lot.purchase_price
        gain = proceeds - cost_basis - fee
    """

    sell_transaction_id: str
    lot_id: str
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    fee: Decimal
    gain: Decimal
    date: datetime | None = None


# =============================================================================
# ASSET
# =============================================================================

@dataclass
class AssetStats:
    """
    Complete valuation for one asset.

    Amounts without a currency suffix are in the asset currency; the
    *_in_comparison fields are in comparison_currency. Every nullable
    field is None when an input it depends on is missing, and the other
    fields are unaffected (a missing asset→comparison rate nulls the
    comparison amounts but keeps current_value).

    Attributes:
        total_quantity: Sum of remaining quantity over open lots
        average_cost: total_cost / total_quantity (0 with no open lots)
        total_cost: Sum of remaining × purchase price
        current_price: Price per unit in the asset currency
        current_value: total_quantity × current_price
        value_in_comparison: current_value converted to comparison currency
        cost_in_comparison: total_cost converted to comparison currency
        unrealized_gain: value_in_comparison - cost_in_comparison
        unrealized_gain_percent: 100 × gain / cost (0 when cost is 0)
        unrealized_gain_native: current_value - total_cost
        realized_gain: Sum of gains from matched sells
        realized_gain_in_comparison: realized_gain converted
        quote_price / quote_currency: The raw quote before conversion
    """

    asset_id: str
    portfolio_id: str | None
    symbol: str
    name: str | None
    asset_type: AssetType
    currency: str
    category_id: str | None
    comparison_currency: str

    total_quantity: Decimal
    average_cost: Decimal
    total_cost: Decimal

    current_price: Decimal | None
    current_value: Decimal | None
    value_in_comparison: Decimal | None
    cost_in_comparison: Decimal | None
    unrealized_gain: Decimal | None
    unrealized_gain_percent: Decimal | None
    unrealized_gain_native: Decimal | None

    status: ValuationStatus

    realized_gain: Decimal = Decimal("0")
    realized_gain_in_comparison: Decimal | None = Decimal("0")

    quote_price: Decimal | None = None
    quote_currency: str | None = None
    price_fetched_at: datetime | None = None
    price_to_asset_rate: Decimal | None = None
    asset_to_comparison_rate: Decimal | None = None

    lots: list[Lot] = field(default_factory=list)
    lot_valuations: list[LotValuation] = field(default_factory=list)
    realized_gains: list[RealizedGain] = field(default_factory=list)
    unmatched_sells: list[Any] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        """True if the comparison value is not known."""
        return self.value_in_comparison is None

    @property
    def has_open_position(self) -> bool:
        return self.total_quantity > 0


# =============================================================================
# PORTFOLIO
# =============================================================================

@dataclass
class PortfolioStats:
    """
    Aggregated valuation for one portfolio or for All Portfolios.

    total_value and total_gain are None whenever pending_count > 0: a
    partial sum would silently understate the portfolio.

    Attributes:
        portfolio_id: Portfolio id, or "all" for the All Portfolios view
        name: Portfolio name
        currency: Currency every total is expressed in
        masked: Display-only flag carried through from the portfolio
        total_value: Sum of asset values (None if any is pending)
        total_cost: Sum of converted asset costs (unconvertible costs excluded)
        total_gain: total_value - total_cost (None if total_value is None)
        total_gain_percent: 100 × gain / cost (0 when cost is 0)
        total_realized_gain: Sum of converted realized gains
            (None if any asset's realized gain could not be converted)
        asset_count: Number of assets aggregated
        pending_count: Assets whose comparison value is unknown
        pending_conversion_count: Assets whose cost could not be converted
        assets: The per-asset stats aggregated
    """

    portfolio_id: str
    name: str
    currency: str
    masked: bool
    total_value: Decimal | None
    total_cost: Decimal
    total_gain: Decimal | None
    total_gain_percent: Decimal | None
    total_realized_gain: Decimal | None
    asset_count: int
    pending_count: int
    pending_conversion_count: int
    assets: list[AssetStats] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.pending_count == 0 and self.pending_conversion_count == 0

    @property
    def is_all_portfolios(self) -> bool:
        return self.portfolio_id == ALL_PORTFOLIOS_ID


# =============================================================================
# ALLOCATION
# =============================================================================

@dataclass(frozen=True)
class AllocationSlice:
    """
    One group of an allocation breakdown.

    Attributes:
        key: Grouping key (asset type value, category id, or None for
             the uncategorized bucket)
        label: Display label
        value: Sum of member values
        percentage: 100 × value / total, two decimal places
        asset_count: Number of member assets
        color: Category color, when grouping by category
    """

    key: str | None
    label: str
    value: Decimal
    percentage: Decimal
    asset_count: int
    color: str | None = None


@dataclass
class AllocationBreakdown:
    """
    Result of an allocation calculation.

    has_categorized_assets is only meaningful for category breakdowns: it is
    True when at least one input asset carries a category, regardless of
    whether that asset made it into a slice.
    """

    slices: list[AllocationSlice]
    total: Decimal
    has_categorized_assets: bool = False
    excluded_count: int = 0

    @property
    def is_empty(self) -> bool:
        return len(self.slices) == 0
