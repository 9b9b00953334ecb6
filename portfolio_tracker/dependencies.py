# portfolio_tracker/dependencies.py
"""
Service wiring for the presentation layer.

Providers, caches and the price/currency services are process-wide
singletons so that the Yahoo request queue, the circuit breakers and the
in-flight de-duplication are shared by every caller. Storage is per
session.

Services are lazily initialized on first use to avoid import-time side
effects (and network clients in tests that never need them).

Usage:
    from portfolio_tracker.database import session_scope
    from portfolio_tracker.dependencies import get_valuation_service

    with session_scope() as db:
        service = get_valuation_service(db)
        stats = await service.get_portfolio_stats(portfolio_id)
"""

import logging
from functools import lru_cache

from sqlalchemy.orm import Session, sessionmaker

from portfolio_tracker.config import settings
from portfolio_tracker.database import SessionLocal, engine, ensure_db
from portfolio_tracker.services.cache import SqlExchangeRateCache, SqlPriceCache
from portfolio_tracker.services.fx_rate_service import CurrencyService, FrankfurterProvider
from portfolio_tracker.services.market_data.kraken import KrakenProvider
from portfolio_tracker.services.market_data.price_service import PriceService
from portfolio_tracker.services.market_data.yahoo import YahooFinanceProvider
from portfolio_tracker.services.portfolio_store import PortfolioStore
from portfolio_tracker.services.valuation.service import ValuationService

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 0. get_session_factory (creates tables on first use)
# 1. get_yahoo_provider / get_kraken_provider (no deps)
# 2. get_price_service (depends on providers)
# 3. get_currency_service (no deps)
# 4. get_valuation_service (per session, depends on 2 and 3)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    """Session factory for the local database, with tables created."""
    ensure_db(engine)
    return SessionLocal


@lru_cache(maxsize=1)
def get_yahoo_provider() -> YahooFinanceProvider:
    """Shared Yahoo provider, so every lookup goes through one request queue."""
    return YahooFinanceProvider(min_request_interval=settings.yahoo_min_request_interval)


@lru_cache(maxsize=1)
def get_kraken_provider() -> KrakenProvider:
    return KrakenProvider()


@lru_cache(maxsize=1)
def get_price_service() -> PriceService:
    """Price service with quotes persisted in the local database."""
    logger.debug("Creating PriceService singleton")
    return PriceService(
        market_provider=get_yahoo_provider(),
        crypto_provider=get_kraken_provider(),
        cache=SqlPriceCache(get_session_factory()),
    )


@lru_cache(maxsize=1)
def get_currency_service() -> CurrencyService:
    """Currency service with rates persisted in the local database."""
    logger.debug("Creating CurrencyService singleton")
    return CurrencyService(
        provider=FrankfurterProvider(),
        cache=SqlExchangeRateCache(get_session_factory()),
    )


def get_portfolio_store(db: Session) -> PortfolioStore:
    return PortfolioStore(db)


def get_valuation_service(db: Session) -> ValuationService:
    return ValuationService(
        storage=get_portfolio_store(db),
        price_service=get_price_service(),
        currency_service=get_currency_service(),
    )
