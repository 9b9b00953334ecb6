# portfolio_tracker/schemas/assets.py
"""
Pydantic schemas for Asset validation.

An asset is one position inside one portfolio. Its type decides how it is
priced; its currency is the currency its transactions are recorded in.
Neither can change after creation: existing lots would silently change
meaning.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_tracker.models import AssetType
from portfolio_tracker.schemas.validators import normalize_tags, validate_currency, validate_symbol


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class AssetCreate(BaseModel):
    """Schema for creating a new asset."""

    portfolio_id: str = Field(..., min_length=1, description="Owning portfolio")

    symbol: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Ticker (Yahoo Finance) or coin code (Kraken)",
        examples=["AAPL", "VWCE.DE", "BTC"]
    )

    name: str | None = Field(default=None, max_length=200)

    asset_type: AssetType = Field(..., examples=[AssetType.STOCK, AssetType.CRYPTO])

    currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="Currency transactions are recorded in (ISO 4217)"
    )

    category_id: str | None = None

    tags: list[str] | None = None

    @field_validator('symbol')
    @classmethod
    def validate_and_normalize_symbol(cls, v: str) -> str:
        return validate_symbol(v)

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator('currency')
    @classmethod
    def validate_and_normalize_currency(cls, v: str) -> str:
        return validate_currency(v)

    @field_validator('tags')
    @classmethod
    def normalize_tag_list(cls, v: list[str] | None) -> list[str] | None:
        return normalize_tags(v)


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class AssetUpdate(BaseModel):
    """
    Schema for updating an existing asset.

    Only fields that are explicitly set are applied, so category_id=None
    un-assigns the category while omitting it leaves it alone.
    Note: portfolio_id, asset_type and currency CANNOT be changed.
    """

    symbol: str | None = Field(default=None, min_length=1, max_length=20)
    name: str | None = Field(default=None, max_length=200)
    category_id: str | None = None
    tags: list[str] | None = None

    @field_validator('symbol')
    @classmethod
    def validate_and_normalize_symbol(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_symbol(v)

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator('tags')
    @classmethod
    def normalize_tag_list(cls, v: list[str] | None) -> list[str] | None:
        return normalize_tags(v)


# =============================================================================
# RESPONSE SCHEMA
# =============================================================================

class AssetResponse(BaseModel):
    id: str
    portfolio_id: str
    symbol: str
    name: str | None
    asset_type: AssetType
    currency: str
    category_id: str | None
    tags: list[str] | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
