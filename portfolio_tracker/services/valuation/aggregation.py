# portfolio_tracker/services/valuation/aggregation.py
"""
Portfolio aggregation: many AssetStats -> one PortfolioStats.

Rules:
- total_cost sums cost_in_comparison over assets where it is known; assets
  whose cost could not be converted are excluded and counted in
  pending_conversion_count.
- pending_count counts assets whose value_in_comparison is None.
- total_value is None whenever pending_count > 0. A partial sum would look
  like a real (lower) portfolio value.
- total_gain follows total_value; total_gain_percent is 0 when cost is 0.

The aggregator is a pure function of its inputs: order-independent,
idempotent, recomputed from scratch on every call.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from portfolio_tracker.services.constants import (
    ALL_PORTFOLIOS_ID,
    ALL_PORTFOLIOS_NAME,
    DEFAULT_DISPLAY_CURRENCY,
    ZERO,
)
from portfolio_tracker.services.valuation.calculators import gain_percent
from portfolio_tracker.services.valuation.types import AssetStats, PortfolioStats

logger = logging.getLogger(__name__)


class PortfolioAggregator:
    """
    Folds per-asset statistics into portfolio totals.

    Every AssetStats passed in must already be expressed in `currency`
    (its comparison_currency); mixing comparison currencies is a caller
    bug and is rejected.
    """

    def aggregate(
            self,
            portfolio_id: str,
            name: str,
            currency: str,
            asset_stats: Sequence[AssetStats],
            masked: bool = False,
    ) -> PortfolioStats:
        """
        Aggregate asset statistics for one portfolio.

        Args:
            portfolio_id: Portfolio id ("all" for the All Portfolios view)
            name: Portfolio display name
            currency: Currency every asset stat is expressed in
            asset_stats: Per-asset stats
            masked: Display flag carried through untouched

        Returns:
            PortfolioStats

        Raises:
            ValueError: If an asset stat uses a different comparison currency
        """
        currency = currency.upper()
        for stats in asset_stats:
            if stats.comparison_currency != currency:
                raise ValueError(
                    f"Asset {stats.asset_id} is valued in {stats.comparison_currency}, "
                    f"expected {currency}"
                )

        total_cost = ZERO
        known_value = ZERO
        pending_count = 0
        pending_conversion_count = 0
        total_realized: Decimal | None = ZERO

        for stats in asset_stats:
            if stats.cost_in_comparison is not None:
                total_cost += stats.cost_in_comparison
            else:
                pending_conversion_count += 1

            if stats.value_in_comparison is not None:
                known_value += stats.value_in_comparison
            else:
                pending_count += 1

            if stats.realized_gain_in_comparison is None:
                if stats.realized_gains:
                    total_realized = None
            elif total_realized is not None:
                total_realized += stats.realized_gain_in_comparison

        total_value: Decimal | None = known_value if pending_count == 0 else None
        total_gain: Decimal | None = None
        total_gain_pct: Decimal | None = None
        if total_value is not None:
            total_gain = total_value - total_cost
            total_gain_pct = gain_percent(total_gain, total_cost)

        if pending_count:
            logger.debug(
                f"Portfolio {portfolio_id}: {pending_count} of {len(asset_stats)} "
                f"asset value(s) pending, total value withheld"
            )

        return PortfolioStats(
            portfolio_id=portfolio_id,
            name=name,
            currency=currency,
            masked=masked,
            total_value=total_value,
            total_cost=total_cost,
            total_gain=total_gain,
            total_gain_percent=total_gain_pct,
            total_realized_gain=total_realized,
            asset_count=len(asset_stats),
            pending_count=pending_count,
            pending_conversion_count=pending_conversion_count,
            assets=list(asset_stats),
        )

    def aggregate_all(
            self,
            asset_stats: Sequence[AssetStats],
            display_currency: str,
    ) -> PortfolioStats:
        """
        Aggregate the union of every portfolio's assets.

        Args:
            asset_stats: Stats for every asset, each already converted into
                         display_currency
            display_currency: Currency of the All Portfolios view
        """
        return self.aggregate(
            portfolio_id=ALL_PORTFOLIOS_ID,
            name=ALL_PORTFOLIOS_NAME,
            currency=display_currency,
            asset_stats=asset_stats,
            masked=False,
        )

    @staticmethod
    def default_display_currency(
            portfolio_currencies: Sequence[str],
            fallback: str = DEFAULT_DISPLAY_CURRENCY,
    ) -> str:
        """First portfolio's currency, or the fallback when there is none."""
        if portfolio_currencies:
            return portfolio_currencies[0].upper()
        return fallback.upper()
