# portfolio_tracker/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- PortfolioStore satisfies StorageProvider without inheriting from it
- Test fakes work without explicit inheritance
- Clear documentation of what the valuation service needs
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any, Protocol, TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from portfolio_tracker.models import Asset, AssetType, Category, Portfolio, Transaction
    from portfolio_tracker.services.cache import CacheEntry
    from portfolio_tracker.services.market_data.base import PriceQuote, SymbolMatch

V = TypeVar("V")


class StorageProvider(Protocol):
    """Read access required by ValuationService."""

    def list_transactions(self, asset_id: str) -> Sequence[Transaction]:
        ...

    def list_assets(self, portfolio_id: str | None = None) -> Sequence[Asset]:
        ...

    def list_portfolios(self) -> Sequence[Portfolio]:
        ...

    def list_categories(self) -> Sequence[Category]:
        ...

    def get_asset(self, asset_id: str) -> Asset:
        ...

    def get_portfolio(self, portfolio_id: str) -> Portfolio:
        ...


class TTLCache(Protocol[V]):
    """Key/value cache whose entries expire."""

    def get(self, key: str) -> CacheEntry[V] | None:
        ...

    def set(self, key: str, value: V, ttl_seconds: float) -> Any:
        ...

    def delete(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...

    def purge_expired(self) -> int:
        ...


class PriceServiceProtocol(Protocol):
    """Price capability required by ValuationService."""

    async def get_price(
        self,
        symbol: str,
        asset_type: AssetType | str,
        preferred_currency: str,
        force_refresh: bool = False,
    ) -> PriceQuote | None:
        ...

    async def prefetch_crypto(
        self,
        requests: Iterable[tuple[str, AssetType | str, str]],
        force_refresh: bool = False,
    ) -> dict[tuple[str, AssetType, str], PriceQuote]:
        ...

    async def search(self, query: str, asset_type: AssetType | str | None = None) -> list[SymbolMatch]:
        ...


class CurrencyServiceProtocol(Protocol):
    """Rate capability required by ValuationService."""

    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        force_refresh: bool = False,
    ) -> Decimal | None:
        ...


class ExchangeRateProvider(Protocol):
    """A source of spot exchange rates (1 from_currency = rate to_currency)."""

    @property
    def name(self) -> str:
        ...

    async def fetch_rate(self, from_currency: str, to_currency: str) -> Decimal:
        ...
