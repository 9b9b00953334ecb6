# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- Fake price and exchange-rate providers
- Sample data factories
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from portfolio_tracker.database import create_db_engine, init_db
from portfolio_tracker.models import (
    Asset,
    AssetType,
    Base,
    Category,
    Portfolio,
    Transaction,
    TransactionType,
)
from portfolio_tracker.services.exceptions import FXRateNotQuotedError, SymbolNotFoundError
from portfolio_tracker.services.market_data.base import MarketDataProvider, PriceQuote, SymbolMatch


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_db_engine("sqlite:///:memory:", echo=False)
    init_db(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# FAKE MARKET DATA PROVIDER
# =============================================================================

class FakeQuoteProvider(MarketDataProvider):
    """
    In-memory MarketDataProvider.

    Quotes are configured per (symbol, currency); currency None means "any
    requested currency" (how market providers behave). Unconfigured
    symbols raise SymbolNotFoundError.
    """

    MAX_RETRY_ATTEMPTS = 1

    def __init__(self, name: str = "fake"):
        self._name = name
        self._quotes: dict[tuple[str, str | None], PriceQuote] = {}
        self._errors: dict[tuple[str, str | None], Exception] = {}
        self._matches: list[SymbolMatch] = []
        self.calls: list[tuple[str, str | None]] = []
        self.search_calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def add_quote(self, symbol: str, price: str, currency: str, requested: str | None = None) -> None:
        self._quotes[(symbol.upper(), requested)] = PriceQuote(price=Decimal(price), currency=currency)

    def add_error(self, symbol: str, error: Exception, requested: str | None = None) -> None:
        self._errors[(symbol.upper(), requested)] = error

    def add_match(self, match: SymbolMatch) -> None:
        self._matches.append(match)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def get_quote(self, symbol: str, currency: str | None = None) -> PriceQuote:
        self.calls.append((symbol.upper(), currency))
        for key in ((symbol.upper(), currency), (symbol.upper(), None)):
            if key in self._errors:
                raise self._errors[key]
            if key in self._quotes:
                return self._quotes[key]
        raise SymbolNotFoundError(symbol=symbol, provider=self.name, currency=currency)

    async def search(self, query: str) -> list[SymbolMatch]:
        self.search_calls.append(query)
        q = query.upper()
        return [m for m in self._matches if q in m.symbol or q in (m.name or "").upper()]


class BatchingQuoteProvider(FakeQuoteProvider):
    """FakeQuoteProvider that also answers several symbols per request."""

    SUPPORTS_BATCH_QUOTES = True

    def __init__(self, name: str = "fake"):
        super().__init__(name)
        self.batch_calls: list[tuple[tuple[str, ...], str | None]] = []

    async def get_quotes(self, symbols: list[str], currency: str | None = None) -> dict[str, PriceQuote]:
        self.batch_calls.append((tuple(s.upper() for s in symbols), currency))
        quotes: dict[str, PriceQuote] = {}
        for symbol in symbols:
            for key in ((symbol.upper(), currency), (symbol.upper(), None)):
                if key in self._errors:
                    raise self._errors[key]
                if key in self._quotes:
                    quotes[symbol.upper()] = self._quotes[key]
                    break
        return quotes


class FakeRateProvider:
    """In-memory ExchangeRateProvider (1 from = rate to)."""

    def __init__(self, rates: dict[tuple[str, str], str] | None = None):
        self._rates = {k: Decimal(v) for k, v in (rates or {}).items()}
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "fake-fx"

    def set_rate(self, from_currency: str, to_currency: str, rate: str) -> None:
        self._rates[(from_currency, to_currency)] = Decimal(rate)

    async def fetch_rate(self, from_currency: str, to_currency: str) -> Decimal:
        self.calls.append((from_currency, to_currency))
        try:
            return self._rates[(from_currency, to_currency)]
        except KeyError:
            raise FXRateNotQuotedError(
                provider=self.name,
                reason="pair not configured",
                base_currency=from_currency,
                quote_currency=to_currency,
            )


@pytest.fixture
def market_provider() -> FakeQuoteProvider:
    return FakeQuoteProvider(name="fake-market")


@pytest.fixture
def crypto_provider() -> FakeQuoteProvider:
    return FakeQuoteProvider(name="fake-crypto")


@pytest.fixture
def rate_provider() -> FakeRateProvider:
    return FakeRateProvider()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

BASE_DATE = datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc)


def create_portfolio(db: Session, name: str = "Main", currency: str = "EUR", masked: bool = False) -> Portfolio:
    portfolio = Portfolio(name=name, currency=currency, masked=masked)
    db.add(portfolio)
    db.commit()
    return portfolio


def create_category(db: Session, name: str, color: str = "#4CAF50") -> Category:
    category = Category(name=name, color=color)
    db.add(category)
    db.commit()
    return category


def create_asset(
        db: Session,
        portfolio: Portfolio,
        symbol: str = "AAPL",
        asset_type: AssetType = AssetType.STOCK,
        currency: str = "EUR",
        name: str | None = None,
        category: Category | None = None,
) -> Asset:
    asset = Asset(
        portfolio_id=portfolio.id,
        symbol=symbol,
        name=name or symbol,
        asset_type=asset_type,
        currency=currency,
        category_id=category.id if category else None,
    )
    db.add(asset)
    db.commit()
    return asset


def create_buy(
        db: Session,
        asset: Asset,
        quantity: str,
        price: str,
        days: int = 0,
        fee: str = "0",
) -> Transaction:
    txn = Transaction(
        asset_id=asset.id,
        transaction_type=TransactionType.BUY,
        quantity=Decimal(quantity),
        price_per_unit=Decimal(price),
        fee=Decimal(fee),
        date=BASE_DATE + timedelta(days=days),
    )
    db.add(txn)
    db.commit()
    return txn


def create_sell(
        db: Session,
        asset: Asset,
        lot: Transaction | str | None,
        quantity: str,
        price: str,
        days: int = 30,
        fee: str = "0",
) -> Transaction:
    """Insert a sell directly, bypassing the store's lot validation."""
    txn = Transaction(
        asset_id=asset.id,
        transaction_type=TransactionType.SELL,
        quantity=Decimal(quantity),
        price_per_unit=Decimal(price),
        fee=Decimal(fee),
        date=BASE_DATE + timedelta(days=days),
        lot_id=lot.id if isinstance(lot, Transaction) else lot,
    )
    db.add(txn)
    db.commit()
    return txn
