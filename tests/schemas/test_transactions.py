# tests/schemas/test_transactions.py
"""
Tests for transaction schemas.

This module tests:
- Field validation (required fields, positivity)
- Lot reference rules (sell needs a lot, buy must not have one)
- Date validation (future dates rejected, naive dates become UTC)
- Update schema: immutable fields are rejected
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from portfolio_tracker.models import TransactionType
from portfolio_tracker.schemas.transactions import TransactionCreate, TransactionUpdate

PAST = datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc)


def create(**overrides) -> TransactionCreate:
    data = dict(
        asset_id="asset-1",
        transaction_type=TransactionType.BUY,
        date=PAST,
        quantity=Decimal("10"),
        price_per_unit=Decimal("100"),
    )
    data.update(overrides)
    return TransactionCreate(**data)


# =============================================================================
# TRANSACTION CREATE TESTS
# =============================================================================

class TestTransactionCreate:
    """Tests for TransactionCreate schema."""

    def test_valid_buy(self):
        """Should accept valid buy data with a zero default fee."""
        data = create()

        assert data.quantity == Decimal("10")
        assert data.fee == Decimal("0")
        assert data.lot_id is None

    def test_required_fields(self):
        """Should require asset_id, transaction_type, date, quantity, price_per_unit."""
        with pytest.raises(ValidationError) as exc_info:
            TransactionCreate()

        error_fields = {e["loc"][0] for e in exc_info.value.errors()}
        assert {"asset_id", "transaction_type", "date", "quantity", "price_per_unit"}.issubset(error_fields)

    @pytest.mark.parametrize("field", ["quantity", "price_per_unit"])
    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_quantity_and_price_must_be_positive(self, field, value):
        with pytest.raises(ValidationError):
            create(**{field: Decimal(value)})

    def test_negative_fee_rejected(self):
        with pytest.raises(ValidationError):
            create(fee=Decimal("-0.01"))

    def test_fractional_quantity(self):
        """Crypto quantities keep 8 decimal places."""
        assert create(quantity=Decimal("0.00012345")).quantity == Decimal("0.00012345")

    def test_too_many_decimal_places(self):
        with pytest.raises(ValidationError):
            create(quantity=Decimal("0.000000001"))

    def test_sell_requires_lot(self):
        with pytest.raises(ValidationError, match="lot"):
            create(transaction_type=TransactionType.SELL)

    def test_sell_with_lot(self):
        data = create(transaction_type="sell", lot_id="buy-1")

        assert data.transaction_type == TransactionType.SELL
        assert data.lot_id == "buy-1"

    def test_buy_cannot_reference_lot(self):
        with pytest.raises(ValidationError, match="buy cannot reference"):
            create(lot_id="buy-1")

    def test_future_date_rejected(self):
        with pytest.raises(ValidationError, match="future"):
            create(date=datetime.now(timezone.utc) + timedelta(days=1))

    def test_naive_date_becomes_utc(self):
        data = create(date=datetime(2024, 1, 15, 12, 0))

        assert data.date.tzinfo == timezone.utc


# =============================================================================
# TRANSACTION UPDATE TESTS
# =============================================================================

class TestTransactionUpdate:
    """Tests for TransactionUpdate schema."""

    def test_all_fields_optional(self):
        data = TransactionUpdate()

        assert data.model_dump(exclude_unset=True) == {}

    def test_partial_update(self):
        data = TransactionUpdate(quantity=Decimal("5"), notes="fixed")

        assert data.model_dump(exclude_unset=True) == {"quantity": Decimal("5"), "notes": "fixed"}

    @pytest.mark.parametrize("field", ["lot_id", "transaction_type", "asset_id"])
    def test_immutable_fields_rejected(self, field):
        with pytest.raises(ValidationError):
            TransactionUpdate(**{field: "x"})

    def test_future_date_rejected(self):
        with pytest.raises(ValidationError):
            TransactionUpdate(date=datetime.now(timezone.utc) + timedelta(days=1))
