# portfolio_tracker/services/cache.py
"""
Time-to-live caches for quotes and exchange rates.

Caches are plain injected objects (see TTLCache in protocols.py); there are
no module-level singletons. Two families are provided:

- InMemoryTTLCache: dict-backed, per-process, used in tests and for
  throwaway sessions
- SqlPriceCache / SqlExchangeRateCache: persisted in the local database so
  a restart does not hit the providers again for still-fresh data

Entries are immutable value replacements: set() overwrites, last write wins.
get() never returns an expired entry. The clock is injectable so staleness
can be tested without sleeping.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generic, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from portfolio_tracker.models import ExchangeRateCacheEntry, PriceCacheEntry
from portfolio_tracker.services.market_data.base import PriceQuote

logger = logging.getLogger(__name__)

V = TypeVar("V")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value with its fetch and expiry timestamps (UTC)."""

    value: V
    fetched_at: datetime
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at

    def age_seconds(self, now: datetime) -> float:
        return (now - self.fetched_at).total_seconds()


# =============================================================================
# IN-MEMORY
# =============================================================================

class InMemoryTTLCache(Generic[V]):
    """
    Dict-backed TTL cache.

    Example:
        cache: InMemoryTTLCache[Decimal] = InMemoryTTLCache()
        cache.set("USD:EUR", Decimal("0.92"), ttl_seconds=3600)
        entry = cache.get("USD:EUR")
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utcnow
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry[V] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_fresh(self._clock()):
                return None
            return entry

    def set(self, key: str, value: V, ttl_seconds: float) -> CacheEntry[V]:
        now = self._clock()
        entry = CacheEntry(value=value, fetched_at=now, expires_at=now + timedelta(seconds=ttl_seconds))
        with self._lock:
            self._entries[key] = entry
        return entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# SQL-BACKED
# =============================================================================

class _SqlCacheBase:
    def __init__(self, session_factory: sessionmaker[Session], clock: Clock | None = None) -> None:
        self._session_factory = session_factory
        self._clock = clock or utcnow


class SqlPriceCache(_SqlCacheBase):
    """
    Quote cache persisted in the price_cache table.

    Keys are the price service's cache keys ("stock:AAPL", "crypto:BTC:EUR").
    """

    def get(self, key: str) -> CacheEntry[PriceQuote] | None:
        with self._session_factory() as db:
            row = db.get(PriceCacheEntry, key)
            if row is None:
                return None
            expires_at = _as_utc(row.expires_at)
            if self._clock() >= expires_at:
                return None
            fetched_at = _as_utc(row.fetched_at)
            quote = PriceQuote(
                price=Decimal(row.price),
                currency=row.currency,
                name=row.name,
                fetched_at=fetched_at,
            )
            return CacheEntry(value=quote, fetched_at=fetched_at, expires_at=expires_at)

    def set(self, key: str, value: PriceQuote, ttl_seconds: float) -> CacheEntry[PriceQuote]:
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        with self._session_factory() as db:
            row = db.get(PriceCacheEntry, key)
            if row is None:
                row = PriceCacheEntry(key=key)
                db.add(row)
            row.price = value.price
            row.currency = value.currency
            row.name = value.name
            row.fetched_at = now
            row.expires_at = expires_at
            db.commit()
        return CacheEntry(value=value, fetched_at=now, expires_at=expires_at)

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(PriceCacheEntry).where(PriceCacheEntry.key == key))
            db.commit()

    def clear(self) -> None:
        with self._session_factory() as db:
            db.execute(delete(PriceCacheEntry))
            db.commit()

    def purge_expired(self) -> int:
        now = self._clock()
        with self._session_factory() as db:
            rows = db.scalars(select(PriceCacheEntry)).all()
            expired = [r for r in rows if _as_utc(r.expires_at) <= now]
            for row in expired:
                db.delete(row)
            db.commit()
        if expired:
            logger.debug(f"Purged {len(expired)} expired price cache entries")
        return len(expired)


class SqlExchangeRateCache(_SqlCacheBase):
    """
    Rate cache persisted in the exchange_rate_cache table.

    Keys have the form "FROM:TO" (see rate_cache_key in fx_rate_service).
    """

    @staticmethod
    def _split(key: str) -> tuple[str, str]:
        from_currency, _, to_currency = key.partition(":")
        return from_currency, to_currency

    def get(self, key: str) -> CacheEntry[Decimal] | None:
        with self._session_factory() as db:
            row = db.get(ExchangeRateCacheEntry, self._split(key))
            if row is None:
                return None
            expires_at = _as_utc(row.expires_at)
            if self._clock() >= expires_at:
                return None
            return CacheEntry(
                value=Decimal(row.rate),
                fetched_at=_as_utc(row.fetched_at),
                expires_at=expires_at,
            )

    def set(self, key: str, value: Decimal, ttl_seconds: float) -> CacheEntry[Decimal]:
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        from_currency, to_currency = self._split(key)
        with self._session_factory() as db:
            row = db.get(ExchangeRateCacheEntry, (from_currency, to_currency))
            if row is None:
                row = ExchangeRateCacheEntry(from_currency=from_currency, to_currency=to_currency)
                db.add(row)
            row.rate = value
            row.fetched_at = now
            row.expires_at = expires_at
            db.commit()
        return CacheEntry(value=value, fetched_at=now, expires_at=expires_at)

    def delete(self, key: str) -> None:
        from_currency, to_currency = self._split(key)
        with self._session_factory() as db:
            db.execute(
                delete(ExchangeRateCacheEntry).where(
                    ExchangeRateCacheEntry.from_currency == from_currency,
                    ExchangeRateCacheEntry.to_currency == to_currency,
                )
            )
            db.commit()

    def clear(self) -> None:
        with self._session_factory() as db:
            db.execute(delete(ExchangeRateCacheEntry))
            db.commit()

    def purge_expired(self) -> int:
        now = self._clock()
        with self._session_factory() as db:
            rows = db.scalars(select(ExchangeRateCacheEntry)).all()
            expired = [r for r in rows if _as_utc(r.expires_at) <= now]
            for row in expired:
                db.delete(row)
            db.commit()
        return len(expired)
