# portfolio_tracker/schemas/portfolios.py
"""
Pydantic schemas for Portfolio validation.

These schemas define:
- What data callers must send (Create)
- What data callers can update (Update)
- What the store hands back (Response)

Validation layers:
- Field constraints: type, length
- Field validators: normalization (uppercase, trim)
- PortfolioStore: existence checks
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_tracker.schemas.validators import validate_currency


# =============================================================================
# BASE SCHEMA
# =============================================================================

class PortfolioBase(BaseModel):
    """
    Base schema with fields common to Create and Response.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        examples=["Retirement", "Crypto", "Broker A"],
        description="Name of the portfolio"
    )

    currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        examples=["EUR", "USD", "GBP"],
        description="Base currency the portfolio is valued in (ISO 4217)"
    )

    masked: bool = Field(
        default=False,
        description="Hide amounts when displaying this portfolio"
    )

    # =========================================================================
    # FIELD VALIDATORS (Normalization & Validation)
    # =========================================================================

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Normalize name: trim whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator('currency')
    @classmethod
    def validate_and_normalize_currency(cls, v: str) -> str:
        """Validate and normalize currency code."""
        return validate_currency(v)


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class PortfolioCreate(PortfolioBase):
    """Schema for creating a new portfolio."""


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class PortfolioUpdate(BaseModel):
    """
    Schema for updating an existing portfolio.

    All fields are optional; only fields that are set are applied.
    """

    name: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="New name for the portfolio"
    )

    currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="New base currency (changes every valuation of the portfolio)"
    )

    masked: bool | None = Field(default=None)

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip()

    @field_validator('currency')
    @classmethod
    def validate_and_normalize_currency(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_currency(v)


# =============================================================================
# RESPONSE SCHEMA
# =============================================================================

class PortfolioResponse(PortfolioBase):
    """Portfolio as stored."""

    id: str = Field(..., description="Unique identifier")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
