# tests/services/test_circuit_breaker.py
"""
Tests for CircuitBreaker state transitions.
"""

import asyncio

import pytest

from portfolio_tracker.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
)
from portfolio_tracker.services.exceptions import ProviderUnavailableError, SymbolNotFoundError


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(
        name="test",
        failure_threshold=2,
        recovery_timeout=30,
        excluded_exceptions=(SymbolNotFoundError,),
        clock=clock,
    )


async def ok() -> str:
    return "ok"


async def down() -> None:
    raise ProviderUnavailableError(provider="test", reason="down")


async def unknown() -> None:
    raise SymbolNotFoundError(symbol="NOPE", provider="test")


def call(breaker: CircuitBreaker, func):
    return asyncio.run(breaker.call_async(func))


class TestCircuitBreaker:

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            CircuitBreaker(name="x", failure_threshold=0)
        with pytest.raises(ValueError):
            CircuitBreaker(name="x", recovery_timeout=-1)

    def test_success_passes_through(self, breaker):
        assert call(breaker, ok) == "ok"
        assert breaker.state == CircuitState.CLOSED

    def test_opens_after_threshold(self, breaker):
        for _ in range(2):
            with pytest.raises(ProviderUnavailableError):
                call(breaker, down)

        assert breaker.is_open
        with pytest.raises(CircuitBreakerOpen) as exc_info:
            call(breaker, ok)
        assert exc_info.value.breaker_name == "test"
        assert exc_info.value.time_remaining == pytest.approx(30)

    def test_success_resets_failure_count(self, breaker):
        with pytest.raises(ProviderUnavailableError):
            call(breaker, down)
        call(breaker, ok)
        with pytest.raises(ProviderUnavailableError):
            call(breaker, down)

        assert breaker.state == CircuitState.CLOSED

    def test_excluded_exceptions_do_not_count(self, breaker):
        for _ in range(5):
            with pytest.raises(SymbolNotFoundError):
                call(breaker, unknown)

        assert breaker.state == CircuitState.CLOSED

    def test_half_open_trial_success_closes(self, breaker, clock):
        breaker.force_open()
        clock.now += 30

        assert breaker.state == CircuitState.HALF_OPEN
        assert call(breaker, ok) == "ok"
        assert breaker.state == CircuitState.CLOSED

    def test_half_open_trial_failure_reopens(self, breaker, clock):
        breaker.force_open()
        clock.now += 30

        with pytest.raises(ProviderUnavailableError):
            call(breaker, down)

        assert breaker.is_open

    def test_sync_context_manager(self, breaker):
        with pytest.raises(RuntimeError):
            with breaker:
                raise RuntimeError("boom")
        with pytest.raises(RuntimeError):
            with breaker:
                raise RuntimeError("boom")

        assert breaker.is_open

    def test_stats_and_reset(self, breaker):
        call(breaker, ok)
        breaker.force_open()
        with pytest.raises(CircuitBreakerOpen):
            call(breaker, ok)

        stats = breaker.stats
        assert stats.total_calls == 2
        assert stats.successful_calls == 1
        assert stats.rejected_calls == 1

        breaker.reset()
        assert breaker.state == CircuitState.CLOSED

    def test_exclude_added_after_construction(self, clock):
        breaker = CircuitBreaker(name="late", failure_threshold=1, clock=clock)
        breaker.exclude(SymbolNotFoundError)
        breaker.exclude(SymbolNotFoundError)

        with pytest.raises(SymbolNotFoundError):
            call(breaker, unknown)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.excluded_exceptions == (SymbolNotFoundError,)
