# portfolio_tracker/schemas/transactions.py
"""
Pydantic schemas for Transaction validation.

These schemas define:
- What data callers must send (Create)
- What data callers can correct afterwards (Update)
- What the store hands back (Response)

Validation layers:
- Field constraints: positive quantity and price, non-negative fee
- Field validators: date normalization, lot reference rules
- PortfolioStore: lot existence and remaining-quantity checks

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from portfolio_tracker.models import TransactionType
from portfolio_tracker.schemas.validators import validate_trade_date


# =============================================================================
# BASE SCHEMA
# =============================================================================

class TransactionBase(BaseModel):
    """
    Fields common to Create and Response.

    Prices and fees are in the asset's currency.
    """

    date: datetime = Field(
        ...,
        description="Date and time when the trade was executed",
        examples=["2026-01-15T14:30:00Z"]
    )

    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Units traded (must be positive)",
        examples=["10", "0.5", "0.00012345"]
    )

    price_per_unit: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Price per unit at time of trade, in the asset currency",
        examples=["150.50", "0.00001234"]
    )

    fee: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Fee/commission in the asset currency (0 or positive)",
    )

    notes: str | None = Field(default=None, max_length=500)


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class TransactionCreate(TransactionBase):
    """
    Schema for recording a buy or sell.

    A sell must name the lot it closes (lot_id = id of a buy of the same
    asset); a buy must not carry one.
    """

    asset_id: str = Field(..., min_length=1)

    transaction_type: TransactionType = Field(
        ...,
        examples=[TransactionType.BUY, TransactionType.SELL]
    )

    lot_id: str | None = Field(
        default=None,
        description="Buy transaction whose lot this sell reduces (sells only)"
    )

    @field_validator('date')
    @classmethod
    def validate_date_not_in_future(cls, v: datetime) -> datetime:
        """Prevent recording transactions that haven't happened yet."""
        return validate_trade_date(v)

    @model_validator(mode='after')
    def check_lot_reference(self) -> "TransactionCreate":
        if self.transaction_type == TransactionType.SELL and not self.lot_id:
            raise ValueError("A sell must reference the lot it closes (lot_id)")
        if self.transaction_type == TransactionType.BUY and self.lot_id:
            raise ValueError("A buy cannot reference a lot")
        return self


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class TransactionUpdate(BaseModel):
    """
    Schema for correcting an existing transaction.

    All fields are optional; only fields that are set are applied.

    Note: asset_id, transaction_type and lot_id CANNOT be changed.
    To change these, delete the transaction and record a new one.
    """

    model_config = ConfigDict(extra='forbid')

    date: datetime | None = None

    quantity: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=8,
    )

    price_per_unit: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=8,
    )

    fee: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=18,
        decimal_places=8,
    )

    notes: str | None = Field(default=None, max_length=500)

    @field_validator('date')
    @classmethod
    def validate_date_not_in_future(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return None
        return validate_trade_date(v)


# =============================================================================
# RESPONSE SCHEMA
# =============================================================================

class TransactionResponse(TransactionBase):
    id: str
    asset_id: str
    transaction_type: TransactionType
    lot_id: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
