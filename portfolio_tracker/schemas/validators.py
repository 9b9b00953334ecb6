# portfolio_tracker/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

This module provides:
- Symbol validation and normalization
- Currency code validation
- Category color and tag normalization
- Trade date validation

These validators ensure consistent input handling across all schemas.
"""

import re
from datetime import datetime, timezone

# =============================================================================
# CONSTANTS
# =============================================================================

# Symbol: 1-20 chars. Covers Yahoo (BRK-B, SAP.DE, ^GSPC, GC=F, EURUSD=X)
# and Kraken codes (BTC, 1INCH)
SYMBOL_PATTERN = re.compile(r'^[\^]?[A-Z0-9][A-Z0-9.\-=]{0,19}$')
SYMBOL_MAX_LENGTH = 20

# Currency: ISO 4217 format (3 uppercase letters)
CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')

# Color: #RGB or #RRGGBB
COLOR_PATTERN = re.compile(r'^#(?:[0-9A-F]{3}|[0-9A-F]{6})$')

TAG_MAX_LENGTH = 30


# =============================================================================
# SYMBOL VALIDATION
# =============================================================================

def validate_symbol(value: str) -> str:
    """
    Validate and normalize an asset symbol.

    Valid formats:
    - Standard tickers: AAPL, NVDA
    - Exchange suffixes: SAP.DE, VWCE.DE
    - Class shares: BRK-B
    - Indices / futures / FX: ^GSPC, GC=F, EURUSD=X
    - Crypto codes: BTC, 1INCH

    Raises:
        ValueError: If symbol format is invalid
    """
    if not value:
        raise ValueError("Symbol cannot be empty")

    normalized = value.strip().upper()

    if len(normalized) > SYMBOL_MAX_LENGTH:
        raise ValueError(f"Symbol cannot exceed {SYMBOL_MAX_LENGTH} characters")

    if not SYMBOL_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid symbol format: '{normalized}'. "
            "Symbol must be alphanumeric and may include '.', '-', '=' or a leading '^'"
        )

    return normalized


# =============================================================================
# CURRENCY VALIDATION
# =============================================================================

def validate_currency(value: str) -> str:
    """
    Validate and normalize a currency code.

    Args:
        value: Raw currency input (e.g., "usd", "EUR")

    Returns:
        Normalized currency (uppercase, trimmed)

    Raises:
        ValueError: If currency format is invalid
    """
    if not value:
        raise ValueError("Currency cannot be empty")

    normalized = value.strip().upper()

    if not CURRENCY_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid currency format: '{normalized}'. "
            "Currency must be a 3-letter ISO code (e.g., USD, EUR)"
        )

    return normalized


# =============================================================================
# CATEGORY COLOR AND TAGS
# =============================================================================

def validate_color(value: str) -> str:
    normalized = value.strip().upper()
    if not COLOR_PATTERN.match(normalized):
        raise ValueError(f"Invalid color: '{value}'. Use #RGB or #RRGGBB")
    return normalized


def normalize_tags(tags: list[str] | None) -> list[str] | None:
    """Trim, drop blanks and duplicates (case-insensitive), keep order."""
    if tags is None:
        return None
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Tag cannot exceed {TAG_MAX_LENGTH} characters")
        if tag.casefold() not in seen:
            seen.add(tag.casefold())
            result.append(tag)
    return result


# =============================================================================
# DATE VALIDATION
# =============================================================================

def validate_trade_date(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes and reject dates in the future.

    Raises:
        ValueError: If the date is in the future
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    if value > datetime.now(timezone.utc):
        raise ValueError("Transaction date cannot be in the future")
    return value
