# tests/services/valuation/test_calculators.py
"""
Unit tests for valuation calculators.

These tests verify the pure calculation logic WITHOUT database dependencies.
We use simple mock objects to simulate Asset and Transaction models.

Test Coverage:
- gain_percent: full precision and zero-cost guard
- LotValuationCalculator: per-lot value and gain
- RealizedGainCalculator: gain of matched sells
- AssetValuationCalculator: three-stage conversion and pending states
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from portfolio_tracker.models import AssetType, TransactionType
from portfolio_tracker.services.market_data.base import PriceQuote
from portfolio_tracker.services.valuation.calculators import (
    AssetValuationCalculator,
    LotValuationCalculator,
    RealizedGainCalculator,
    gain_percent,
)
from portfolio_tracker.services.valuation.types import Lot, ValuationStatus


# =============================================================================
# MOCK OBJECTS (No database needed)
# =============================================================================

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass
class MockAsset:
    id: str
    symbol: str
    name: str | None
    asset_type: AssetType
    currency: str
    portfolio_id: str = "p1"
    category_id: str | None = None


@dataclass
class MockTransaction:
    id: str
    transaction_type: TransactionType
    quantity: Decimal
    price_per_unit: Decimal
    fee: Decimal = Decimal("0")
    lot_id: str | None = None
    date: datetime = T0


def make_lot(lot_id: str, remaining: str, price: str, original: str | None = None) -> Lot:
    return Lot(
        id=lot_id,
        asset_id="a1",
        buy_transaction_id=lot_id,
        original_quantity=Decimal(original or remaining),
        remaining_quantity=Decimal(remaining),
        purchase_price=Decimal(price),
        purchase_date=T0,
    )


def quote(price: str, currency: str) -> PriceQuote:
    return PriceQuote(price=Decimal(price), currency=currency, fetched_at=T0)


@pytest.fixture
def calculator() -> AssetValuationCalculator:
    return AssetValuationCalculator()


@pytest.fixture
def stock_eur() -> MockAsset:
    return MockAsset(id="a1", symbol="SAP.DE", name="SAP", asset_type=AssetType.STOCK, currency="EUR")


@pytest.fixture
def stock_usd() -> MockAsset:
    return MockAsset(id="a2", symbol="AAPL", name="Apple", asset_type=AssetType.STOCK, currency="USD")


# =============================================================================
# GAIN PERCENT
# =============================================================================

class TestGainPercent:
    """Tests for gain_percent()."""

    def test_basic(self):
        assert gain_percent(Decimal("180"), Decimal("600")) == Decimal("30.00")

    def test_keeps_full_precision(self):
        pct = gain_percent(Decimal("1"), Decimal("3"))

        assert pct == Decimal("100") / Decimal("3")
        assert pct != Decimal("33.33")

    def test_tiny_gain_not_rounded_away(self):
        assert gain_percent(Decimal("0.001"), Decimal("100")) == Decimal("0.001")

    def test_negative_gain(self):
        assert gain_percent(Decimal("-50"), Decimal("200")) == Decimal("-25.00")

    def test_zero_cost_is_zero(self):
        """Division by zero is guarded: the percent is 0."""
        assert gain_percent(Decimal("10"), Decimal("0")) == Decimal("0")


# =============================================================================
# LOT VALUATION
# =============================================================================

class TestLotValuationCalculator:
    """Tests for per-lot valuation."""

    def test_values_each_lot(self):
        lots = [make_lot("b1", "6", "100", original="10"), make_lot("b2", "2", "150")]

        result = LotValuationCalculator().calculate(lots, Decimal("130"))

        assert [v.current_value for v in result] == [Decimal("780"), Decimal("260")]
        assert [v.gain for v in result] == [Decimal("180"), Decimal("-40")]
        assert result[0].gain_percent == Decimal("30.00")
        assert result[1].cost == Decimal("300")

    def test_unknown_price_gives_none(self):
        result = LotValuationCalculator().calculate([make_lot("b1", "6", "100")], None)

        assert result[0].cost == Decimal("600")
        assert result[0].current_value is None
        assert result[0].gain is None
        assert result[0].gain_percent is None


# =============================================================================
# REALIZED GAIN
# =============================================================================

class TestRealizedGainCalculator:
    """Tests for realized gains of matched sells."""

    def test_gain_uses_lot_purchase_price(self):
        """Buy 10 @ 100, sell 4 @ 120 with fee 2 -> 480 - 400 - 2 = 78."""
        transactions = [
            MockTransaction("b1", TransactionType.BUY, Decimal("10"), Decimal("100")),
            MockTransaction("s1", TransactionType.SELL, Decimal("4"), Decimal("120"), Decimal("2"), lot_id="b1"),
        ]

        gains = RealizedGainCalculator().calculate(transactions)

        assert len(gains) == 1
        g = gains[0]
        assert g.sell_transaction_id == "s1"
        assert g.lot_id == "b1"
        assert g.proceeds == Decimal("480")
        assert g.cost_basis == Decimal("400")
        assert g.fee == Decimal("2")
        assert g.gain == Decimal("78")

    def test_closed_lot_still_yields_gain(self):
        """Fully selling a lot closes it but keeps its realized gain."""
        transactions = [
            MockTransaction("b1", TransactionType.BUY, Decimal("2"), Decimal("50")),
            MockTransaction("s1", TransactionType.SELL, Decimal("2"), Decimal("40"), lot_id="b1"),
        ]

        gains = RealizedGainCalculator().calculate(transactions)

        assert gains[0].gain == Decimal("-20")

    def test_unmatched_sells_have_no_gain(self):
        transactions = [
            MockTransaction("b1", TransactionType.BUY, Decimal("2"), Decimal("50")),
            MockTransaction("s1", TransactionType.SELL, Decimal("1"), Decimal("60")),
            MockTransaction("s2", TransactionType.SELL, Decimal("1"), Decimal("60"), lot_id="gone"),
        ]

        assert RealizedGainCalculator().calculate(transactions) == []

    def test_each_sell_against_a_lot_gets_its_own_gain(self):
        """Two partial sells of one lot: 3 @ 10 fee 1 -> 5, 2 @ 6 -> -4."""
        transactions = [
            MockTransaction("b1", TransactionType.BUY, Decimal("5"), Decimal("8")),
            MockTransaction("s1", TransactionType.SELL, Decimal("3"), Decimal("10"), Decimal("1"), lot_id="b1"),
            MockTransaction("s2", TransactionType.SELL, Decimal("2"), Decimal("6"), lot_id="b1"),
        ]

        gains = RealizedGainCalculator().calculate(transactions)

        assert [(g.sell_transaction_id, g.gain) for g in gains] == [("s1", Decimal("5")), ("s2", Decimal("-4"))]


# =============================================================================
# ASSET VALUATION
# =============================================================================

class TestAssetValuationSameCurrency:
    """Asset, quote and comparison currency all equal."""

    def test_basic_lot_and_sell_scenario(self, calculator, stock_eur):
        """Remaining 6 @ 100, price 130 -> value 780, cost 600, gain 180 (30%)."""
        stats = calculator.calculate(
            asset=stock_eur,
            lots=[make_lot("b1", "6", "100", original="10")],
            quote=quote("130", "EUR"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.status == ValuationStatus.COMPLETE
        assert stats.total_quantity == Decimal("6")
        assert stats.total_cost == Decimal("600")
        assert stats.average_cost == Decimal("100")
        assert stats.current_price == Decimal("130")
        assert stats.current_value == Decimal("780")
        assert stats.value_in_comparison == Decimal("780")
        assert stats.cost_in_comparison == Decimal("600")
        assert stats.unrealized_gain == Decimal("180")
        assert stats.unrealized_gain_percent == Decimal("30")
        assert stats.unrealized_gain_native == Decimal("180")
        assert stats.asset_to_comparison_rate == Decimal("1")
        assert not stats.is_pending

    def test_average_cost_is_weighted(self, calculator, stock_eur):
        stats = calculator.calculate(
            asset=stock_eur,
            lots=[make_lot("b1", "3", "100"), make_lot("b2", "1", "200")],
            quote=quote("150", "EUR"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.total_cost == Decimal("500")
        assert stats.average_cost == Decimal("125")

    def test_no_open_lots(self, calculator, stock_eur):
        """A fully sold asset has zero quantity, zero cost, zero percent."""
        stats = calculator.calculate(
            asset=stock_eur,
            lots=[],
            quote=quote("130", "EUR"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.total_quantity == Decimal("0")
        assert stats.average_cost == Decimal("0")
        assert stats.current_value == Decimal("0")
        assert stats.unrealized_gain_percent == Decimal("0")
        assert not stats.has_open_position

    def test_realized_gains_are_summed(self, calculator, stock_eur):
        realized = RealizedGainCalculator().calculate([
            MockTransaction("b1", TransactionType.BUY, Decimal("10"), Decimal("100")),
            MockTransaction("s1", TransactionType.SELL, Decimal("4"), Decimal("120"), lot_id="b1"),
        ])

        stats = calculator.calculate(
            asset=stock_eur,
            lots=[make_lot("b1", "6", "100", original="10")],
            quote=quote("130", "EUR"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
            realized_gains=realized,
        )

        assert stats.realized_gain == Decimal("80")
        assert stats.realized_gain_in_comparison == Decimal("80")


class TestAssetValuationCrossCurrency:
    """Stage 3: asset currency differs from comparison currency."""

    def test_cross_currency_scenario(self, calculator, stock_usd):
        """Value 1000 USD at USD->EUR 0.9 -> 900 EUR."""
        stats = calculator.calculate(
            asset=stock_usd,
            lots=[make_lot("b1", "10", "80")],
            quote=quote("100", "USD"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=Decimal("0.9"),
            comparison_currency="EUR",
        )

        assert stats.current_value == Decimal("1000")
        assert stats.value_in_comparison == Decimal("900")
        assert stats.cost_in_comparison == Decimal("720")
        assert stats.unrealized_gain == Decimal("180")
        assert stats.unrealized_gain_percent == Decimal("25")
        assert stats.unrealized_gain_native == Decimal("200")
        assert stats.status == ValuationStatus.COMPLETE

    def test_missing_comparison_rate(self, calculator, stock_usd):
        """Native value stays known; comparison amounts become None."""
        stats = calculator.calculate(
            asset=stock_usd,
            lots=[make_lot("b1", "10", "80")],
            quote=quote("100", "USD"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.current_value == Decimal("1000")
        assert stats.value_in_comparison is None
        assert stats.cost_in_comparison is None
        assert stats.unrealized_gain is None
        assert stats.unrealized_gain_percent is None
        assert stats.realized_gain_in_comparison is None
        assert stats.status == ValuationStatus.CONVERSION_PENDING
        assert stats.is_pending
        assert stats.warnings

    def test_comparison_currency_is_case_insensitive(self, calculator, stock_usd):
        stats = calculator.calculate(
            asset=stock_usd,
            lots=[make_lot("b1", "1", "1")],
            quote=quote("2", "USD"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="usd",
        )

        assert stats.comparison_currency == "USD"
        assert stats.value_in_comparison == Decimal("2")


class TestAssetValuationPending:
    """Missing inputs never fall back to cost or zero."""

    def test_missing_quote(self, calculator, stock_eur):
        stats = calculator.calculate(
            asset=stock_eur,
            lots=[make_lot("b1", "6", "100")],
            quote=None,
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.status == ValuationStatus.PRICE_PENDING
        assert stats.current_price is None
        assert stats.current_value is None
        assert stats.value_in_comparison is None
        assert stats.unrealized_gain is None
        assert stats.unrealized_gain_percent is None
        assert stats.unrealized_gain_native is None
        # Cost is still known
        assert stats.total_cost == Decimal("600")
        assert stats.cost_in_comparison == Decimal("600")
        assert all(v.current_value is None for v in stats.lot_valuations)

    def test_quote_in_other_currency_is_converted(self, calculator):
        """Stage 1: a USD quote for an EUR asset uses price_to_asset_rate."""
        btc = MockAsset(id="a3", symbol="BTC", name="Bitcoin", asset_type=AssetType.BITCOIN, currency="EUR")

        stats = calculator.calculate(
            asset=btc,
            lots=[make_lot("b1", "0.5", "30000")],
            quote=quote("60000", "USD"),
            price_to_asset_rate=Decimal("0.9"),
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.current_price == Decimal("54000")
        assert stats.current_value == Decimal("27000")
        assert stats.quote_price == Decimal("60000")
        assert stats.quote_currency == "USD"
        assert stats.status == ValuationStatus.COMPLETE

    def test_quote_in_other_currency_without_rate(self, calculator):
        btc = MockAsset(id="a3", symbol="BTC", name="Bitcoin", asset_type=AssetType.BITCOIN, currency="EUR")

        stats = calculator.calculate(
            asset=btc,
            lots=[make_lot("b1", "0.5", "30000")],
            quote=quote("60000", "USD"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.status == ValuationStatus.CONVERSION_PENDING
        assert stats.current_price is None
        assert stats.current_value is None
        assert stats.unrealized_gain is None


class TestAssetValuationSimpleTypes:
    """Simple types are priced at their own average cost."""

    def test_cash_parity(self, calculator):
        """Cash: 100 units @ 1 -> price 1, value 100, gain 0."""
        cash = MockAsset(id="c1", symbol="CASH", name="Savings", asset_type=AssetType.CASH, currency="EUR")

        stats = calculator.calculate(
            asset=cash,
            lots=[make_lot("b1", "100", "1")],
            quote=quote("1", "EUR"),
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.current_price == Decimal("1")
        assert stats.average_cost == Decimal("1")
        assert stats.current_value == Decimal("100")
        assert stats.unrealized_gain == Decimal("0")
        assert stats.status == ValuationStatus.COMPLETE

    def test_simple_type_ignores_missing_quote(self, calculator):
        house = MockAsset(id="r1", symbol="HOME", name="Flat", asset_type=AssetType.REAL_ESTATE, currency="EUR")

        stats = calculator.calculate(
            asset=house,
            lots=[make_lot("b1", "1", "250000")],
            quote=None,
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert stats.current_price == Decimal("250000")
        assert stats.current_value == Decimal("250000")
        assert stats.status == ValuationStatus.COMPLETE

    def test_simple_type_in_foreign_currency_still_converts(self, calculator):
        cash = MockAsset(id="c2", symbol="USD", name="Dollars", asset_type=AssetType.CASH, currency="USD")

        stats = calculator.calculate(
            asset=cash,
            lots=[make_lot("b1", "1000", "1")],
            quote=None,
            price_to_asset_rate=None,
            asset_to_comparison_rate=Decimal("0.9"),
            comparison_currency="EUR",
        )

        assert stats.value_in_comparison == Decimal("900")
        assert stats.cost_in_comparison == Decimal("900")
        assert stats.unrealized_gain == Decimal("0")

    def test_deterministic(self, calculator):
        cash = MockAsset(id="c1", symbol="CASH", name=None, asset_type=AssetType.OTHER, currency="EUR")
        kwargs = dict(
            asset=cash,
            lots=[make_lot("b1", "3", "7")],
            quote=None,
            price_to_asset_rate=None,
            asset_to_comparison_rate=None,
            comparison_currency="EUR",
        )

        assert calculator.calculate(**kwargs) == calculator.calculate(**kwargs)
