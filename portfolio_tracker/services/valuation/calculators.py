# portfolio_tracker/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

Each calculator follows the Single Responsibility Principle:
- AssetValuationCalculator: Lots + quote + rates -> AssetStats
- LotValuationCalculator: Per-lot value and unrealized gain
- RealizedGainCalculator: Gain locked in by each matched sell

Design Principles:
- Stateless (no instance state, pure functions)
- Receives all inputs explicitly: no storage, no network, no clock
- Never raises on missing data: unknown inputs produce None outputs
- Uses Decimal for ALL financial calculations

Currency conversion happens in three independent stages:

    quote currency --(price_to_asset_rate)--> asset currency
    asset currency --(asset_to_comparison_rate)--> comparison currency

    Stage 1: quote.price × price_to_asset_rate  (skipped when the quote is
             already in the asset currency)
    Stage 2: current_value = total_quantity × current_price
    Stage 3: value and cost × asset_to_comparison_rate  (skipped when the
             asset currency is the comparison currency)

A missing input at any stage nulls only what depends on it. In particular a
missing asset→comparison rate leaves current_value known while the
comparison amounts become None.

Usage:
    calc = AssetValuationCalculator()
    stats = calc.calculate(
        asset=asset,
        lots=lots,
        quote=quote,
        price_to_asset_rate=None,
        asset_to_comparison_rate=Decimal("0.9"),
        comparison_currency="EUR",
    )
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from portfolio_tracker.models import AssetType, TransactionType
from portfolio_tracker.services.constants import HUNDRED, ZERO
from portfolio_tracker.services.valuation.types import (
    AssetStats,
    Lot,
    LotValuation,
    RealizedGain,
    ValuationStatus,
)

if TYPE_CHECKING:
    from portfolio_tracker.services.market_data.base import PriceQuote

logger = logging.getLogger(__name__)


def gain_percent(gain: Decimal, cost: Decimal) -> Decimal:
    """100 × gain / cost at full precision; 0 when cost is not positive."""
    if cost <= ZERO:
        return ZERO
    return HUNDRED * gain / cost


# =============================================================================
# LOT VALUATION
# =============================================================================

class LotValuationCalculator:
    """
    Values each open lot at the asset's current price.

    All amounts are in the asset currency.
    """

    def calculate(self, lots: Sequence[Lot], current_price: Decimal | None) -> list[LotValuation]:
        results: list[LotValuation] = []

        for lot in lots:
            cost = lot.cost
            if current_price is None:
                results.append(LotValuation(
                    lot=lot, cost=cost, current_value=None, gain=None, gain_percent=None,
                ))
                continue

            value = lot.remaining_quantity * current_price
            gain = value - cost
            results.append(LotValuation(
                lot=lot,
                cost=cost,
                current_value=value,
                gain=gain,
                gain_percent=gain_percent(gain, cost),
            ))

        return results


# =============================================================================
# REALIZED GAIN
# =============================================================================

class RealizedGainCalculator:
    """
    Computes the realized gain of every sell that matches a buy.

    The sell's cost basis uses the purchase price of the buy it names, so
    gains stay correct after the lot is fully closed.

    Sells without a matching buy produce no entry: their cost basis is
    unknown. The lot resolver reports them separately.
    """

    def calculate(self, transactions: Iterable[Any]) -> list[RealizedGain]:
        txns = list(transactions)
        buys_by_id = {
            t.id: t for t in txns if t.transaction_type == TransactionType.BUY
        }

        results: list[RealizedGain] = []
        for sell in txns:
            if sell.transaction_type != TransactionType.SELL:
                continue
            buy = buys_by_id.get(sell.lot_id) if sell.lot_id else None
            if buy is None:
                continue

            fee = sell.fee or ZERO
            proceeds = sell.quantity * sell.price_per_unit
            cost_basis = sell.quantity * buy.price_per_unit
            results.append(RealizedGain(
                sell_transaction_id=sell.id,
                lot_id=buy.id,
                quantity=sell.quantity,
                proceeds=proceeds,
                cost_basis=cost_basis,
                fee=fee,
                gain=proceeds - cost_basis - fee,
                date=sell.date,
            ))

        return results


# =============================================================================
# ASSET VALUATION
# =============================================================================

class AssetValuationCalculator:
    """
    Computes AssetStats for one asset.

    Simple assets (cash, real estate, other) have no market feed: their
    current price is their own average cost, so their unrealized gain in
    the asset currency is always zero.

    Market assets take their price from the quote. No quote means the value
    is unknown (PRICE_PENDING), never zero and never the cost.
    """

    def __init__(self, lot_calculator: LotValuationCalculator | None = None) -> None:
        self._lot_calculator = lot_calculator or LotValuationCalculator()

    def calculate(
            self,
            asset: Any,
            lots: Sequence[Lot],
            quote: PriceQuote | None,
            price_to_asset_rate: Decimal | None,
            asset_to_comparison_rate: Decimal | None,
            comparison_currency: str,
            realized_gains: Sequence[RealizedGain] = (),
            unmatched_sells: Sequence[Any] = (),
    ) -> AssetStats:
        """
        Value one asset.

        Args:
            asset: Asset row (id, portfolio_id, symbol, name, asset_type,
                   currency, category_id)
            lots: Open lots of the asset
            quote: Latest quote, or None if unavailable
            price_to_asset_rate: 1 quote currency = rate asset currency
                                 (only used when the currencies differ)
            asset_to_comparison_rate: 1 asset currency = rate comparison
                                      currency (only used when they differ)
            comparison_currency: Currency for comparison amounts
            realized_gains: Output of RealizedGainCalculator for this asset
            unmatched_sells: Sells that matched no lot

        Returns:
            AssetStats with explicit ValuationStatus
        """
        asset_type = AssetType(asset.asset_type)
        asset_currency = asset.currency.upper()
        comparison_currency = comparison_currency.upper()
        warnings: list[str] = []

        total_quantity = sum((lot.remaining_quantity for lot in lots), ZERO)
        total_cost = sum((lot.cost for lot in lots), ZERO)
        average_cost = total_cost / total_quantity if total_quantity > ZERO else ZERO

        # Stage 1: price in the asset currency
        current_price, status = self._resolve_price(
            asset, asset_type, asset_currency, quote, price_to_asset_rate, average_cost, warnings,
        )

        # Stage 2: value in the asset currency
        current_value = total_quantity * current_price if current_price is not None else None

        # Stage 3: comparison currency
        if asset_currency == comparison_currency:
            cmp_rate: Decimal | None = Decimal("1")
        else:
            cmp_rate = asset_to_comparison_rate
            if cmp_rate is None:
                warnings.append(
                    f"No exchange rate {asset_currency}->{comparison_currency} for {asset.symbol}"
                )

        cost_in_comparison = total_cost * cmp_rate if cmp_rate is not None else None
        value_in_comparison = (
            current_value * cmp_rate
            if current_value is not None and cmp_rate is not None
            else None
        )

        if current_value is not None and value_in_comparison is None:
            status = ValuationStatus.CONVERSION_PENDING

        unrealized_gain: Decimal | None = None
        unrealized_gain_pct: Decimal | None = None
        if value_in_comparison is not None and cost_in_comparison is not None:
            unrealized_gain = value_in_comparison - cost_in_comparison
            unrealized_gain_pct = gain_percent(unrealized_gain, cost_in_comparison)

        unrealized_gain_native = current_value - total_cost if current_value is not None else None

        realized_total = sum((g.gain for g in realized_gains), ZERO)
        realized_in_comparison = realized_total * cmp_rate if cmp_rate is not None else None

        return AssetStats(
            asset_id=asset.id,
            portfolio_id=getattr(asset, "portfolio_id", None),
            symbol=asset.symbol,
            name=asset.name,
            asset_type=asset_type,
            currency=asset_currency,
            category_id=getattr(asset, "category_id", None),
            comparison_currency=comparison_currency,
            total_quantity=total_quantity,
            average_cost=average_cost,
            total_cost=total_cost,
            current_price=current_price,
            current_value=current_value,
            value_in_comparison=value_in_comparison,
            cost_in_comparison=cost_in_comparison,
            unrealized_gain=unrealized_gain,
            unrealized_gain_percent=unrealized_gain_pct,
            unrealized_gain_native=unrealized_gain_native,
            status=status,
            realized_gain=realized_total,
            realized_gain_in_comparison=realized_in_comparison,
            quote_price=quote.price if quote is not None else None,
            quote_currency=quote.currency if quote is not None else None,
            price_fetched_at=quote.fetched_at if quote is not None else None,
            price_to_asset_rate=price_to_asset_rate,
            asset_to_comparison_rate=cmp_rate,
            lots=list(lots),
            lot_valuations=self._lot_calculator.calculate(lots, current_price),
            realized_gains=list(realized_gains),
            unmatched_sells=list(unmatched_sells),
            warnings=warnings,
        )

    @staticmethod
    def _resolve_price(
            asset: Any,
            asset_type: AssetType,
            asset_currency: str,
            quote: PriceQuote | None,
            price_to_asset_rate: Decimal | None,
            average_cost: Decimal,
            warnings: list[str],
    ) -> tuple[Decimal | None, ValuationStatus]:
        """Return (price in asset currency, status after stage 1)."""
        if asset_type.is_simple:
            return average_cost, ValuationStatus.COMPLETE

        if quote is None:
            warnings.append(f"No price available for {asset.symbol}")
            return None, ValuationStatus.PRICE_PENDING

        if quote.currency.upper() == asset_currency:
            return quote.price, ValuationStatus.COMPLETE

        if price_to_asset_rate is None:
            warnings.append(
                f"No exchange rate {quote.currency.upper()}->{asset_currency} "
                f"to convert the {asset.symbol} quote"
            )
            return None, ValuationStatus.CONVERSION_PENDING

        return quote.price * price_to_asset_rate, ValuationStatus.COMPLETE
