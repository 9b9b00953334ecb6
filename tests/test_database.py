# tests/test_database.py
"""
Tests for engine creation and session_scope.
"""

import pytest
from sqlalchemy import inspect
from sqlalchemy.orm import sessionmaker

from portfolio_tracker.database import create_db_engine, session_scope
from portfolio_tracker.schemas import PortfolioCreate
from portfolio_tracker.services.portfolio_store import PortfolioStore


@pytest.fixture
def file_engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'fresh.db'}", echo=False)
    yield engine
    engine.dispose()


class TestSessionScope:

    def test_fresh_database_gets_tables(self, file_engine):
        factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

        with session_scope(factory) as db:
            portfolio = PortfolioStore(db).create_portfolio(PortfolioCreate(name="Main", currency="USD"))
            portfolio_id = portfolio.id

        assert "portfolios" in inspect(file_engine).get_table_names()
        with session_scope(factory) as db:
            assert PortfolioStore(db).get_portfolio(portfolio_id).currency == "USD"

    def test_error_propagates(self, file_engine):
        factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

        with pytest.raises(RuntimeError, match="boom"):
            with session_scope(factory):
                raise RuntimeError("boom")
