# tests/schemas/test_validators.py
"""
Tests for shared validators and the asset/portfolio/category schemas that
use them.
"""

import pytest
from pydantic import ValidationError

from portfolio_tracker.models import AssetType
from portfolio_tracker.schemas import AssetCreate, AssetUpdate, CategoryCreate, PortfolioCreate
from portfolio_tracker.schemas.validators import (
    validate_color,
    validate_currency,
    validate_symbol,
)


class TestValidateSymbol:

    @pytest.mark.parametrize("raw, expected", [
        ("aapl", "AAPL"),
        (" sap.de ", "SAP.DE"),
        ("brk-b", "BRK-B"),
        ("^gspc", "^GSPC"),
        ("GC=F", "GC=F"),
        ("1inch", "1INCH"),
    ])
    def test_valid(self, raw, expected):
        assert validate_symbol(raw) == expected

    @pytest.mark.parametrize("raw", ["", "BAD SYMBOL", ".DE", "A" * 21, "AB$"])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            validate_symbol(raw)


class TestValidateCurrency:

    def test_normalizes(self):
        assert validate_currency(" usd ") == "USD"

    @pytest.mark.parametrize("raw", ["", "US", "USDT", "U5D"])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            validate_currency(raw)


class TestValidateColor:

    @pytest.mark.parametrize("raw, expected", [("#abc", "#ABC"), ("#4caf50", "#4CAF50")])
    def test_valid(self, raw, expected):
        assert validate_color(raw) == expected

    @pytest.mark.parametrize("raw", ["4CAF50", "#ABCD", "#GGGGGG"])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            validate_color(raw)


class TestSchemas:

    def test_portfolio_blank_name(self):
        with pytest.raises(ValidationError):
            PortfolioCreate(name="   ")

    def test_portfolio_defaults(self):
        data = PortfolioCreate(name="Main")

        assert data.currency == "EUR"
        assert data.masked is False

    def test_category_color_normalized(self):
        assert CategoryCreate(name="Core", color="#fff").color == "#FFF"

    def test_asset_symbol_required(self):
        with pytest.raises(ValidationError):
            AssetCreate(portfolio_id="p1", asset_type=AssetType.CASH)

    def test_asset_tags_normalized(self):
        data = AssetCreate(
            portfolio_id="p1", symbol="AAPL", asset_type=AssetType.STOCK, tags=[" tech ", "", "Tech", "us"],
        )

        assert data.tags == ["tech", "us"]

    def test_asset_tag_too_long(self):
        with pytest.raises(ValidationError):
            AssetCreate(portfolio_id="p1", symbol="AAPL", asset_type=AssetType.STOCK, tags=["x" * 31])

    def test_asset_update_tracks_explicit_none(self):
        assert AssetUpdate(category_id=None).model_dump(exclude_unset=True) == {"category_id": None}
        assert AssetUpdate().model_dump(exclude_unset=True) == {}

    def test_asset_update_cannot_change_type(self):
        """asset_type is not an update field and is silently ignored."""
        data = AssetUpdate(asset_type="crypto")

        assert "asset_type" not in data.model_dump()
