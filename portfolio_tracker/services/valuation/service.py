# portfolio_tracker/services/valuation/service.py
"""
Valuation Service - Main orchestrator for current-value statistics.

This is the single entry point for all valuation operations:
- get_lots() / get_lot_resolution(): Open lots of an asset
- get_asset_stats(): One asset valued in a comparison currency
- get_portfolio_stats(): One portfolio, valued in its own currency
- get_all_portfolios_stats(): Every asset of every portfolio, in one
  display currency
- get_type_allocation() / get_category_allocation(): Breakdowns of a
  portfolio result

Design Principles:
- Dependency Injection: storage, prices and rates come in through the
  constructor (see protocols.py)
- Full recomputation: every call re-reads transactions and rebuilds lots,
  nothing derived is kept between calls
- Pending is a value, not an error: missing prices and rates surface as
  None fields and ValuationStatus, never as exceptions
- Concurrency: price and rate lookups for all assets run concurrently with
  asyncio.gather; the capabilities de-duplicate identical lookups

Usage:
    service = ValuationService(store, price_service, currency_service)

    stats = await service.get_portfolio_stats(portfolio_id)
    if stats.total_value is None:
        print(f"{stats.pending_count} asset(s) still pending")

    overview = await service.get_all_portfolios_stats(display_currency="USD")
    by_type = service.get_type_allocation(overview)
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from portfolio_tracker.config import settings
from portfolio_tracker.models import AssetType
from portfolio_tracker.services.valuation.aggregation import PortfolioAggregator
from portfolio_tracker.services.valuation.allocation import AllocationCalculator
from portfolio_tracker.services.valuation.calculators import (
    AssetValuationCalculator,
    RealizedGainCalculator,
)
from portfolio_tracker.services.valuation.lots import LotResolver
from portfolio_tracker.services.valuation.types import (
    AllocationBreakdown,
    AssetStats,
    Lot,
    LotResolution,
    PortfolioStats,
)
from portfolio_tracker.utils.context import refresh_scope

if TYPE_CHECKING:
    from portfolio_tracker.services.market_data.base import PriceQuote
    from portfolio_tracker.services.protocols import (
        CurrencyServiceProtocol,
        PriceServiceProtocol,
        StorageProvider,
    )

logger = logging.getLogger(__name__)


class ValuationService:
    """
    Main service for portfolio valuation.

    Composes the pure engines (LotResolver, calculators, aggregator,
    allocation) with the storage and the two async capabilities.

    Example:
        service = ValuationService(store, price_service, currency_service)
        stats = await service.get_asset_stats(asset_id, comparison_currency="EUR")
        print(stats.status, stats.value_in_comparison)
    """

    def __init__(
            self,
            storage: StorageProvider,
            price_service: PriceServiceProtocol,
            currency_service: CurrencyServiceProtocol,
            lot_resolver: LotResolver | None = None,
            asset_calculator: AssetValuationCalculator | None = None,
            realized_calculator: RealizedGainCalculator | None = None,
            aggregator: PortfolioAggregator | None = None,
            allocation_calculator: AllocationCalculator | None = None,
    ) -> None:
        self._storage = storage
        self._prices = price_service
        self._rates = currency_service
        self._lots = lot_resolver or LotResolver()
        self._asset_calc = asset_calculator or AssetValuationCalculator()
        self._realized_calc = realized_calculator or RealizedGainCalculator()
        self._aggregator = aggregator or PortfolioAggregator()
        self._allocation = allocation_calculator or AllocationCalculator()
        logger.info("ValuationService initialized")

    # =========================================================================
    # LOTS
    # =========================================================================

    def get_lots(self, asset_id: str) -> list[Lot]:
        """
        Open lots of an asset, in chronological order of their buys.

        Raises:
            AssetNotFoundError: If the asset does not exist
        """
        return self.get_lot_resolution(asset_id).lots

    def get_lot_resolution(self, asset_id: str) -> LotResolution:
        """Open lots plus the sells that matched no lot."""
        self._storage.get_asset(asset_id)
        return self._lots.resolve_with_diagnostics(self._storage.list_transactions(asset_id))

    # =========================================================================
    # ASSET
    # =========================================================================

    async def get_asset_stats(
            self,
            asset_id: str,
            comparison_currency: str | None = None,
            force_refresh: bool = False,
    ) -> AssetStats:
        """
        Value one asset.

        Args:
            asset_id: Asset to value
            comparison_currency: Currency for comparison amounts (defaults
                                 to the currency of the asset's portfolio)
            force_refresh: Bypass price and rate caches

        Raises:
            AssetNotFoundError: If the asset does not exist
        """
        with refresh_scope():
            asset = self._storage.get_asset(asset_id)
            if comparison_currency is None:
                comparison_currency = self._storage.get_portfolio(asset.portfolio_id).currency
            return await self._value_asset(asset, comparison_currency.upper(), force_refresh)

    async def _value_asset(
            self,
            asset: Any,
            comparison_currency: str,
            force_refresh: bool,
            quote: PriceQuote | None = None,
    ) -> AssetStats:
        transactions = self._storage.list_transactions(asset.id)
        resolution = self._lots.resolve_with_diagnostics(transactions)
        realized = self._realized_calc.calculate(transactions)
        asset_currency = asset.currency.upper()

        if quote is None:
            quote, asset_to_comparison = await asyncio.gather(
                self._prices.get_price(asset.symbol, asset.asset_type, asset_currency, force_refresh=force_refresh),
                self._rates.get_rate(asset_currency, comparison_currency, force_refresh=force_refresh),
            )
        else:
            asset_to_comparison = await self._rates.get_rate(
                asset_currency, comparison_currency, force_refresh=force_refresh
            )

        price_to_asset = await self._price_to_asset_rate(asset, quote, force_refresh)

        stats = self._asset_calc.calculate(
            asset=asset,
            lots=resolution.lots,
            quote=quote,
            price_to_asset_rate=price_to_asset,
            asset_to_comparison_rate=asset_to_comparison,
            comparison_currency=comparison_currency,
            realized_gains=realized,
            unmatched_sells=resolution.unmatched_sells,
        )
        if stats.is_pending:
            logger.debug(f"{asset.symbol} ({asset.id}) pending: {stats.status.value}")
        return stats

    async def _price_to_asset_rate(
            self,
            asset: Any,
            quote: PriceQuote | None,
            force_refresh: bool,
    ) -> Decimal | None:
        """
        Rate from the quote currency to the asset currency.

        Only crypto quotes are converted: their currency depends on which
        fallback answered. A market quote in a foreign currency means the
        symbol does not trade in the asset's currency, and stays pending.
        """
        if quote is None or quote.currency.upper() == asset.currency.upper():
            return None
        if not AssetType(asset.asset_type).is_crypto:
            return None
        return await self._rates.get_rate(quote.currency, asset.currency, force_refresh=force_refresh)

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    async def get_portfolio_stats(self, portfolio_id: str, force_refresh: bool = False) -> PortfolioStats:
        """
        Value every asset of a portfolio in the portfolio currency.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        with refresh_scope() as refresh_id:
            portfolio = self._storage.get_portfolio(portfolio_id)
            assets = self._storage.list_assets(portfolio_id)
            currency = portfolio.currency.upper()
            logger.info(
                f"Valuing portfolio {portfolio.id} ({len(assets)} assets, {currency}, refresh={refresh_id})"
            )

            asset_stats = await self._value_assets(assets, currency, force_refresh)
            return self._aggregator.aggregate(
                portfolio_id=portfolio.id,
                name=portfolio.name,
                currency=currency,
                asset_stats=asset_stats,
                masked=portfolio.masked,
            )

    async def get_all_portfolios_stats(
            self,
            display_currency: str | None = None,
            force_refresh: bool = False,
    ) -> PortfolioStats:
        """
        Value the union of all portfolios' assets in one display currency.

        Args:
            display_currency: Currency of the view (defaults to the first
                              portfolio's currency, or the configured
                              default when there are no portfolios)
            force_refresh: Bypass price and rate caches
        """
        with refresh_scope() as refresh_id:
            if display_currency is None:
                portfolios = self._storage.list_portfolios()
                display_currency = self._aggregator.default_display_currency(
                    [p.currency for p in portfolios],
                    fallback=settings.default_display_currency,
                )
            display_currency = display_currency.upper()

            assets = self._storage.list_assets(None)
            logger.info(
                f"Valuing all portfolios ({len(assets)} assets, {display_currency}, refresh={refresh_id})"
            )

            asset_stats = await self._value_assets(assets, display_currency, force_refresh)
            return self._aggregator.aggregate_all(asset_stats, display_currency)

    async def _value_assets(
            self,
            assets: list[Any],
            comparison_currency: str,
            force_refresh: bool,
    ) -> list[AssetStats]:
        # Crypto symbols sharing a currency go out as one provider request
        prefetched = await self._prices.prefetch_crypto(
            [(asset.symbol, asset.asset_type, asset.currency) for asset in assets],
            force_refresh=force_refresh,
        )
        return list(await asyncio.gather(*(
            self._value_asset(
                asset,
                comparison_currency,
                force_refresh,
                quote=prefetched.get(_prefetch_key(asset)),
            )
            for asset in assets
        )))

    # =========================================================================
    # ALLOCATION
    # =========================================================================

    def get_type_allocation(self, stats: PortfolioStats) -> AllocationBreakdown:
        """Allocation of a portfolio result by asset type."""
        return self._allocation.by_type(stats.assets)

    def get_category_allocation(self, stats: PortfolioStats) -> AllocationBreakdown:
        """Allocation of a portfolio result by category."""
        return self._allocation.by_category(stats.assets, self._storage.list_categories())


def _prefetch_key(asset: Any) -> tuple[str, AssetType, str]:
    return asset.symbol.strip().upper(), AssetType(asset.asset_type), asset.currency.strip().upper()
