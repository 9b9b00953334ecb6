# tests/services/valuation/test_aggregation.py
"""
Unit tests for PortfolioAggregator.

AssetStats are built directly; no calculators, no database.
"""

from decimal import Decimal

import pytest

from portfolio_tracker.models import AssetType
from portfolio_tracker.services.valuation.aggregation import PortfolioAggregator
from portfolio_tracker.services.valuation.types import AssetStats, RealizedGain, ValuationStatus


def make_stats(
        asset_id: str,
        value: str | None,
        cost: str | None,
        currency: str = "EUR",
        realized: str | None = "0",
        asset_type: AssetType = AssetType.STOCK,
        category_id: str | None = None,
        with_sells: bool = False,
) -> AssetStats:
    value_d = Decimal(value) if value is not None else None
    cost_d = Decimal(cost) if cost is not None else None
    gains = []
    if with_sells:
        gains = [RealizedGain(
            sell_transaction_id=f"{asset_id}-s",
            lot_id=f"{asset_id}-b",
            quantity=Decimal("1"),
            proceeds=Decimal("1"),
            cost_basis=Decimal("1"),
            fee=Decimal("0"),
            gain=Decimal("0"),
        )]
    return AssetStats(
        asset_id=asset_id,
        portfolio_id="p1",
        symbol=asset_id.upper(),
        name=None,
        asset_type=asset_type,
        currency=currency,
        category_id=category_id,
        comparison_currency=currency,
        total_quantity=Decimal("1"),
        average_cost=cost_d or Decimal("0"),
        total_cost=cost_d or Decimal("0"),
        current_price=value_d,
        current_value=value_d,
        value_in_comparison=value_d,
        cost_in_comparison=cost_d,
        unrealized_gain=(value_d - cost_d) if value_d is not None and cost_d is not None else None,
        unrealized_gain_percent=None,
        unrealized_gain_native=None,
        status=ValuationStatus.COMPLETE if value_d is not None else ValuationStatus.PRICE_PENDING,
        realized_gain=Decimal(realized or "0"),
        realized_gain_in_comparison=Decimal(realized) if realized is not None else None,
        realized_gains=gains,
    )


@pytest.fixture
def aggregator() -> PortfolioAggregator:
    return PortfolioAggregator()


class TestAggregate:
    """Tests for PortfolioAggregator.aggregate()."""

    def test_all_known(self, aggregator):
        stats = aggregator.aggregate(
            portfolio_id="p1",
            name="Main",
            currency="EUR",
            asset_stats=[
                make_stats("a", "780", "600", realized="80"),
                make_stats("b", "220", "200", realized="-10"),
            ],
        )

        assert stats.total_value == Decimal("1000")
        assert stats.total_cost == Decimal("800")
        assert stats.total_gain == Decimal("200")
        assert stats.total_gain_percent == Decimal("25.00")
        assert stats.total_realized_gain == Decimal("70")
        assert stats.asset_count == 2
        assert stats.pending_count == 0
        assert stats.is_complete
        assert not stats.is_all_portfolios

    def test_gain_percent_not_rounded(self, aggregator):
        stats = aggregator.aggregate(
            portfolio_id="p1",
            name="Main",
            currency="EUR",
            asset_stats=[make_stats("a", "200", "150"), make_stats("b", "200", "150")],
        )

        assert stats.total_gain_percent == Decimal("100") / Decimal("3")

    def test_pending_asset_withholds_total(self, aggregator):
        """One asset without a value -> total_value None, pending_count 1."""
        stats = aggregator.aggregate(
            portfolio_id="p1",
            name="Main",
            currency="EUR",
            asset_stats=[
                make_stats("a", "780", "600"),
                make_stats("b", None, "200"),
            ],
        )

        assert stats.total_value is None
        assert stats.total_gain is None
        assert stats.total_gain_percent is None
        assert stats.pending_count == 1
        # Cost of the pending asset is still known and counted
        assert stats.total_cost == Decimal("800")
        assert not stats.is_complete

    def test_unconvertible_cost_is_excluded_and_counted(self, aggregator):
        stats = aggregator.aggregate(
            portfolio_id="p1",
            name="Main",
            currency="EUR",
            asset_stats=[
                make_stats("a", "100", "50"),
                make_stats("b", None, None),
            ],
        )

        assert stats.total_cost == Decimal("50")
        assert stats.pending_conversion_count == 1
        assert stats.pending_count == 1

    def test_empty_portfolio(self, aggregator):
        stats = aggregator.aggregate(portfolio_id="p1", name="Empty", currency="usd", asset_stats=[])

        assert stats.currency == "USD"
        assert stats.total_value == Decimal("0")
        assert stats.total_cost == Decimal("0")
        assert stats.total_gain == Decimal("0")
        assert stats.total_gain_percent == Decimal("0")
        assert stats.asset_count == 0

    def test_realized_gain_unknown_when_unconvertible(self, aggregator):
        stats = aggregator.aggregate(
            portfolio_id="p1",
            name="Main",
            currency="EUR",
            asset_stats=[
                make_stats("a", "100", "50", realized="10"),
                make_stats("b", None, None, realized=None, with_sells=True),
            ],
        )

        assert stats.total_realized_gain is None

    def test_unconvertible_asset_without_sells_keeps_realized_total(self, aggregator):
        stats = aggregator.aggregate(
            portfolio_id="p1",
            name="Main",
            currency="EUR",
            asset_stats=[
                make_stats("a", "100", "50", realized="10"),
                make_stats("b", None, None, realized=None),
            ],
        )

        assert stats.total_realized_gain == Decimal("10")

    def test_masked_is_carried_through(self, aggregator):
        stats = aggregator.aggregate(
            portfolio_id="p1", name="Secret", currency="EUR", asset_stats=[], masked=True,
        )

        assert stats.masked is True

    def test_mixed_comparison_currency_rejected(self, aggregator):
        with pytest.raises(ValueError, match="expected EUR"):
            aggregator.aggregate(
                portfolio_id="p1",
                name="Main",
                currency="EUR",
                asset_stats=[make_stats("a", "1", "1", currency="USD")],
            )

    def test_order_independent(self, aggregator):
        a = make_stats("a", "10", "5")
        b = make_stats("b", "20", "30")

        first = aggregator.aggregate(portfolio_id="p1", name="M", currency="EUR", asset_stats=[a, b])
        second = aggregator.aggregate(portfolio_id="p1", name="M", currency="EUR", asset_stats=[b, a])

        assert first.total_value == second.total_value
        assert first.total_cost == second.total_cost
        assert first.total_gain_percent == second.total_gain_percent


class TestAggregateAll:
    """Tests for the All Portfolios view."""

    def test_all_portfolios_identity(self, aggregator):
        stats = aggregator.aggregate_all([make_stats("a", "10", "5")], display_currency="eur")

        assert stats.portfolio_id == "all"
        assert stats.name == "All Portfolios"
        assert stats.currency == "EUR"
        assert stats.masked is False
        assert stats.is_all_portfolios
        assert stats.total_value == Decimal("10")

    def test_default_display_currency(self):
        assert PortfolioAggregator.default_display_currency(["usd", "EUR"]) == "USD"
        assert PortfolioAggregator.default_display_currency([]) == "EUR"
        assert PortfolioAggregator.default_display_currency([], fallback="chf") == "CHF"
