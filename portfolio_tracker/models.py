# portfolio_tracker/models.py
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Enum, Numeric, Boolean, JSON, Integer, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class AssetType(str, enum.Enum):
    STOCK = "stock"
    ETF = "etf"
    CRYPTO = "crypto"
    BITCOIN = "bitcoin"
    BOND = "bond"
    COMMODITY = "commodity"
    CASH = "cash"
    REAL_ESTATE = "realEstate"
    OTHER = "other"

    @property
    def is_simple(self) -> bool:
        """Simple assets have no market feed; they are priced at their own cost."""
        return self in SIMPLE_ASSET_TYPES

    @property
    def is_crypto(self) -> bool:
        return self in (AssetType.CRYPTO, AssetType.BITCOIN)


SIMPLE_ASSET_TYPES = frozenset({AssetType.CASH, AssetType.REAL_ESTATE, AssetType.OTHER})


class Portfolio(Base):
    __tablename__ = "portfolios"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")
    masked: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Deleting a portfolio removes its assets (and, through them, their transactions)
    assets: Mapped[list["Asset"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )


class Category(Base):
    """User-defined grouping for assets (e.g. "Retirement", "Speculative")."""
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String)
    color: Mapped[str] = mapped_column(String, default="#808080")
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    # No cascade: deleting a category un-assigns its assets, it never deletes them
    assets: Mapped[list["Asset"]] = relationship(back_populates="category")


class Asset(Base):
    """
    A position inside one portfolio.

    The same symbol may appear in several portfolios; each occurrence is its
    own Asset row with its own transactions.
    """
    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    portfolio_id: Mapped[str] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String, index=True)  # e.g. "AAPL", "BTC"
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    asset_type: Mapped[AssetType] = mapped_column(Enum(AssetType, values_callable=lambda e: [m.value for m in e]))
    currency: Mapped[str] = mapped_column(String(3), default="EUR")  # currency lots are recorded in
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="assets")
    category: Mapped["Category | None"] = relationship(back_populates="assets")
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="asset",
        cascade="all, delete-orphan",
    )


class Transaction(Base):
    """
    An append-only buy or sell record.

    Sells carry lot_id, the id of the buy transaction whose lot they close
    against. lot_id is a plain column rather than a foreign key: deleting a
    buy leaves its sells in place, and the lot resolver reports them as
    unmatched.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_asset_date", "asset_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    asset_id: Mapped[str] = mapped_column(ForeignKey("assets.id", ondelete="CASCADE"), index=True)
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, values_callable=lambda e: [m.value for m in e])
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(18, 8))  # asset currency
    fee: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(String, nullable=True)
    lot_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    asset: Mapped["Asset"] = relationship(back_populates="transactions")


# =============================================================================
# CACHES
# =============================================================================

class PriceCacheEntry(Base):
    """Last fetched quote per cache key ("stock:AAPL", "crypto:BTC:EUR")."""
    __tablename__ = "price_cache"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    price: Mapped[Decimal] = mapped_column(Numeric(24, 10))
    currency: Mapped[str] = mapped_column(String(3))
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class ExchangeRateCacheEntry(Base):
    """Last fetched rate per currency pair: 1 from_currency = rate to_currency."""
    __tablename__ = "exchange_rate_cache"

    from_currency: Mapped[str] = mapped_column(String(3), primary_key=True)
    to_currency: Mapped[str] = mapped_column(String(3), primary_key=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(24, 10))
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
