# portfolio_tracker/services/portfolio_store.py
"""
Local store for portfolios, categories, assets and transactions.

This service handles:
- Validated create / update / delete for every stored entity
- The read access ValuationService needs (StorageProvider protocol)
- Lot bookkeeping rules that need stored state: a sell must close against
  an existing buy of the same asset and may not exceed what that lot has
  left

Design Principles:
- No UI knowledge: raises domain exceptions from services/exceptions.py
- Input shape is validated by the Pydantic schemas; this layer checks
  rules that depend on what is already stored
- One commit per mutation

Cascades:
- Deleting a portfolio deletes its assets and their transactions
- Deleting an asset deletes its transactions
- Deleting a category un-assigns it from its assets
- Deleting a buy leaves its sells in place (they become unmatched sells)

Usage:
    with session_scope() as db:
        store = PortfolioStore(db)
        portfolio = store.create_portfolio(PortfolioCreate(name="Main", currency="EUR"))
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from portfolio_tracker.models import Asset, Category, Portfolio, Transaction, TransactionType
from portfolio_tracker.schemas.assets import AssetCreate, AssetUpdate
from portfolio_tracker.schemas.categories import CategoryCreate, CategoryUpdate
from portfolio_tracker.schemas.portfolios import PortfolioCreate, PortfolioUpdate
from portfolio_tracker.schemas.transactions import TransactionCreate, TransactionUpdate
from portfolio_tracker.services.exceptions import (
    AssetNotFoundError,
    CategoryNotFoundError,
    ImmutableFieldError,
    InvalidLotReferenceError,
    PortfolioNotFoundError,
    SellExceedsLotError,
    TransactionNotFoundError,
    ValidationError,
)
from portfolio_tracker.services.valuation.lots import LotResolver

logger = logging.getLogger(__name__)

# Fixed when a transaction is recorded
IMMUTABLE_TRANSACTION_FIELDS = ("asset_id", "transaction_type", "lot_id")


class PortfolioStore:
    """
    SQLAlchemy-backed store. Satisfies StorageProvider.

    Example:
        store = PortfolioStore(db)
        buy = store.create_transaction(TransactionCreate(
            asset_id=asset.id, transaction_type="buy",
            quantity=10, price_per_unit=100, date=datetime(2024, 1, 2),
        ))
        store.create_transaction(TransactionCreate(
            asset_id=asset.id, transaction_type="sell", lot_id=buy.id,
            quantity=4, price_per_unit=120, date=datetime(2024, 6, 1),
        ))
    """

    def __init__(self, db: Session, lot_resolver: LotResolver | None = None) -> None:
        self._db = db
        self._lots = lot_resolver or LotResolver()

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    def list_portfolios(self) -> list[Portfolio]:
        """All portfolios, oldest first."""
        return list(self._db.scalars(
            select(Portfolio).order_by(Portfolio.created_at, Portfolio.name)
        ))

    def get_portfolio(self, portfolio_id: str) -> Portfolio:
        portfolio = self._db.get(Portfolio, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def create_portfolio(self, data: PortfolioCreate) -> Portfolio:
        portfolio = Portfolio(**data.model_dump())
        self._db.add(portfolio)
        self._db.commit()
        self._db.refresh(portfolio)
        logger.info(f"Created portfolio {portfolio.id} ({portfolio.name}, {portfolio.currency})")
        return portfolio

    def update_portfolio(self, portfolio_id: str, data: PortfolioUpdate) -> Portfolio:
        portfolio = self.get_portfolio(portfolio_id)
        for field_name, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(portfolio, field_name, value)
        self._db.commit()
        self._db.refresh(portfolio)
        return portfolio

    def delete_portfolio(self, portfolio_id: str) -> None:
        """Delete a portfolio with all its assets and their transactions."""
        portfolio = self.get_portfolio(portfolio_id)
        self._db.delete(portfolio)
        self._db.commit()
        logger.info(f"Deleted portfolio {portfolio_id}")

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def list_categories(self) -> list[Category]:
        return list(self._db.scalars(
            select(Category).order_by(Category.sort_order, Category.name)
        ))

    def get_category(self, category_id: str) -> Category:
        category = self._db.get(Category, category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def create_category(self, data: CategoryCreate) -> Category:
        category = Category(**data.model_dump())
        self._db.add(category)
        self._db.commit()
        self._db.refresh(category)
        return category

    def update_category(self, category_id: str, data: CategoryUpdate) -> Category:
        category = self.get_category(category_id)
        for field_name, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(category, field_name, value)
        self._db.commit()
        self._db.refresh(category)
        return category

    def delete_category(self, category_id: str) -> None:
        """Delete a category; its assets become uncategorized."""
        category = self.get_category(category_id)
        self._db.execute(
            update(Asset)
            .where(Asset.category_id == category_id)
            .values(category_id=None)
        )
        self._db.delete(category)
        self._db.commit()
        self._db.expire_all()

    # =========================================================================
    # ASSETS
    # =========================================================================

    def list_assets(self, portfolio_id: str | None = None) -> list[Asset]:
        """Assets of one portfolio, or of every portfolio when portfolio_id is None."""
        stmt = select(Asset).order_by(Asset.created_at, Asset.symbol)
        if portfolio_id is not None:
            stmt = stmt.where(Asset.portfolio_id == portfolio_id)
        return list(self._db.scalars(stmt))

    def get_asset(self, asset_id: str) -> Asset:
        asset = self._db.get(Asset, asset_id)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    def create_asset(self, data: AssetCreate) -> Asset:
        self.get_portfolio(data.portfolio_id)
        if data.category_id is not None:
            self.get_category(data.category_id)

        asset = Asset(**data.model_dump())
        self._db.add(asset)
        self._db.commit()
        self._db.refresh(asset)
        logger.info(f"Created {asset.asset_type.value} asset {asset.symbol} in portfolio {asset.portfolio_id}")
        return asset

    def update_asset(self, asset_id: str, data: AssetUpdate) -> Asset:
        """
        Apply the fields that are set on data.

        category_id may be explicitly set to None to un-assign the category;
        other fields set to None are ignored.
        """
        asset = self.get_asset(asset_id)
        changes = data.model_dump(exclude_unset=True)

        if "category_id" in changes:
            category_id = changes.pop("category_id")
            if category_id is not None:
                self.get_category(category_id)
            asset.category_id = category_id

        for field_name, value in changes.items():
            if value is None and field_name != "tags":
                continue
            setattr(asset, field_name, value)

        self._db.commit()
        self._db.refresh(asset)
        return asset

    def delete_asset(self, asset_id: str) -> None:
        """Delete an asset with all its transactions."""
        asset = self.get_asset(asset_id)
        self._db.delete(asset)
        self._db.commit()
        logger.info(f"Deleted asset {asset_id}")

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def list_transactions(self, asset_id: str) -> list[Transaction]:
        """Transactions of one asset in chronological order."""
        return list(self._db.scalars(
            select(Transaction)
            .where(Transaction.asset_id == asset_id)
            .order_by(Transaction.date, Transaction.created_at)
        ))

    def get_transaction(self, transaction_id: str) -> Transaction:
        txn = self._db.get(Transaction, transaction_id)
        if txn is None:
            raise TransactionNotFoundError(transaction_id)
        return txn

    def create_transaction(self, data: TransactionCreate) -> Transaction:
        """
        Record a buy or sell.

        Raises:
            AssetNotFoundError: Unknown asset
            InvalidLotReferenceError: Sell names no buy of this asset
            SellExceedsLotError: Sell quantity exceeds the lot's remaining quantity
        """
        self.get_asset(data.asset_id)

        if data.transaction_type == TransactionType.SELL:
            available = self._remaining_in_lot(data.asset_id, data.lot_id)
            if data.quantity > available:
                raise SellExceedsLotError(data.lot_id, data.quantity, available)

        txn = Transaction(**data.model_dump())
        self._db.add(txn)
        self._db.commit()
        self._db.refresh(txn)
        logger.info(
            f"Recorded {txn.transaction_type.value} of {txn.quantity} "
            f"@ {txn.price_per_unit} for asset {txn.asset_id}"
        )
        return txn

    def update_transaction(
            self,
            transaction_id: str,
            data: TransactionUpdate | Mapping[str, Any],
    ) -> Transaction:
        """
        Correct quantity, price, fee, date or notes of a transaction.

        Raises:
            ImmutableFieldError: asset_id, transaction_type or lot_id in the changes
            SellExceedsLotError: A sell grows beyond what its lot has left
                (unmatched sells have no lot and are not checked)
            ValidationError: A buy shrinks below what has already been sold from it
        """
        if isinstance(data, Mapping):
            for field_name in IMMUTABLE_TRANSACTION_FIELDS:
                if field_name in data:
                    raise ImmutableFieldError(field_name)
            data = TransactionUpdate(**data)

        txn = self.get_transaction(transaction_id)
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k == "notes"}

        new_quantity = changes.get("quantity")
        if new_quantity is not None and new_quantity != txn.quantity:
            if txn.transaction_type == TransactionType.SELL:
                remaining = self._lots.remaining_for_lot(self.list_transactions(txn.asset_id), txn.lot_id or "")
                # An unmatched sell (its buy was deleted) has no lot left to overdraw
                if remaining is not None:
                    # The sell's own quantity is back in the lot while it is being edited
                    available = remaining + txn.quantity
                    if new_quantity > available:
                        raise SellExceedsLotError(txn.lot_id, new_quantity, available)
            else:
                sold = txn.quantity - self._remaining_in_lot(txn.asset_id, txn.id)
                if new_quantity < sold:
                    raise ValidationError(
                        f"Cannot reduce lot {txn.id} to {new_quantity}: {sold} already sold",
                        field="quantity",
                    )

        for field_name, value in changes.items():
            setattr(txn, field_name, value)
        self._db.commit()
        self._db.refresh(txn)
        return txn

    def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete a transaction.

        Deleting a buy does not delete the sells closed against it; the lot
        resolver reports them as unmatched sells.
        """
        txn = self.get_transaction(transaction_id)
        self._db.delete(txn)
        self._db.commit()

    # =========================================================================
    # LOTS
    # =========================================================================

    def remaining_in_lot(self, lot_id: str) -> Decimal:
        """Remaining quantity of the lot opened by buy transaction lot_id."""
        buy = self.get_transaction(lot_id)
        return self._remaining_in_lot(buy.asset_id, lot_id)

    def _remaining_in_lot(self, asset_id: str, lot_id: str | None) -> Decimal:
        if lot_id is None:
            raise InvalidLotReferenceError(None, asset_id)
        remaining = self._lots.remaining_for_lot(self.list_transactions(asset_id), lot_id)
        if remaining is None:
            raise InvalidLotReferenceError(lot_id, asset_id)
        return remaining
