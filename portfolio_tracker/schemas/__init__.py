# portfolio_tracker/schemas/__init__.py
"""
Input and output schemas for the local store.

Usage:
    from portfolio_tracker.schemas import TransactionCreate

    data = TransactionCreate(asset_id=asset.id, transaction_type="buy", ...)
"""

from portfolio_tracker.schemas.assets import AssetCreate, AssetResponse, AssetUpdate
from portfolio_tracker.schemas.categories import CategoryCreate, CategoryResponse, CategoryUpdate
from portfolio_tracker.schemas.portfolios import PortfolioCreate, PortfolioResponse, PortfolioUpdate
from portfolio_tracker.schemas.transactions import (
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
)

__all__ = [
    "AssetCreate",
    "AssetResponse",
    "AssetUpdate",
    "CategoryCreate",
    "CategoryResponse",
    "CategoryUpdate",
    "PortfolioCreate",
    "PortfolioResponse",
    "PortfolioUpdate",
    "TransactionCreate",
    "TransactionResponse",
    "TransactionUpdate",
]
