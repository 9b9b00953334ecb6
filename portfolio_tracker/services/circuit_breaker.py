# portfolio_tracker/services/circuit_breaker.py
"""
Circuit breaker guarding calls to external price and rate providers.

When a provider keeps failing (network down, API outage), hammering it on
every refresh only slows the valuation pass down. After `failure_threshold`
consecutive failures the breaker opens and lookups fail fast with
CircuitBreakerOpen, which the price and currency services turn into None
("pending") just like any other provider failure.

States:
    CLOSED    - Normal operation, calls pass through
    OPEN      - Calls rejected until recovery_timeout has elapsed
    HALF_OPEN - A limited number of trial calls allowed

Transitions:
    CLOSED -> OPEN       failure count reaches threshold
    OPEN -> HALF_OPEN    recovery timeout expires
    HALF_OPEN -> CLOSED  a trial call succeeds
    HALF_OPEN -> OPEN    a trial call fails

Usage:
    breaker = CircuitBreaker(name="kraken", failure_threshold=5)

    # Synchronous block
    with breaker:
        payload = fetch()

    # Coroutine
    quote = await breaker.call_async(provider.get_quote, "BTC", "EUR")
"""

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until the breaker will allow a trial call
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreakerStats:
    """Counters for monitoring a breaker."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0


@dataclass
class CircuitBreaker:
    """
    Thread-safe circuit breaker usable from sync code and from coroutines.

    Attributes:
        name: Identifier used in logs and errors (usually the provider name)
        failure_threshold: Consecutive failures before opening
        recovery_timeout: Seconds to stay open before allowing trial calls
        half_open_max_calls: Trial calls allowed while half-open
        excluded_exceptions: Exception types that do not count as failures
            (e.g. "symbol not found" says nothing about provider health)
        clock: Monotonic time source, replaceable in tests
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    half_open_max_calls: int = 1
    excluded_exceptions: tuple[type[BaseException], ...] = field(default_factory=tuple)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    _stats: CircuitBreakerStats = field(default_factory=CircuitBreakerStats, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

        logger.debug(
            f"CircuitBreaker '{self.name}' initialized: "
            f"threshold={self.failure_threshold}, "
            f"recovery_timeout={self.recovery_timeout}s"
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh_state()
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def stats(self) -> CircuitBreakerStats:
        """Snapshot of the counters."""
        with self._lock:
            s = self._stats
            return CircuitBreakerStats(
                total_calls=s.total_calls,
                successful_calls=s.successful_calls,
                failed_calls=s.failed_calls,
                rejected_calls=s.rejected_calls,
                state_changes=s.state_changes,
            )

    def _refresh_state(self) -> None:
        # Caller holds the lock
        if self._state == CircuitState.OPEN and self._seconds_open() >= self.recovery_timeout:
            self._transition_to(CircuitState.HALF_OPEN)

    def _seconds_open(self) -> float:
        return self.clock() - self._opened_at

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1

        if new_state == CircuitState.OPEN:
            self._opened_at = self.clock()
        elif new_state == CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        elif new_state == CircuitState.CLOSED:
            self._failure_count = 0

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"CircuitBreaker '{self.name}' state change: {old_state.value} -> {new_state.value}")

    # =========================================================================
    # CALL ACCOUNTING
    # =========================================================================

    def _before_call(self) -> None:
        with self._lock:
            self._stats.total_calls += 1
            self._refresh_state()

            allowed = self._state == CircuitState.CLOSED
            if self._state == CircuitState.HALF_OPEN and self._half_open_calls < self.half_open_max_calls:
                self._half_open_calls += 1
                allowed = True

            if not allowed:
                self._stats.rejected_calls += 1
                remaining = max(0.0, self.recovery_timeout - self._seconds_open())
                raise CircuitBreakerOpen(self.name, remaining)

    def _after_call(self, exc: BaseException | None) -> None:
        with self._lock:
            if exc is None or isinstance(exc, self.excluded_exceptions):
                self._stats.successful_calls += 1
                self._failure_count = 0
                if self._state == CircuitState.HALF_OPEN:
                    self._transition_to(CircuitState.CLOSED)
                return

            self._stats.failed_calls += 1
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
                return

            self._failure_count += 1
            if self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                self._transition_to(CircuitState.OPEN)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def __enter__(self) -> "CircuitBreaker":
        self._before_call()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        self._after_call(exc_val)
        return False

    async def call_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Await func(*args, **kwargs) under the breaker.

        Raises:
            CircuitBreakerOpen: If the circuit is open
        """
        self._before_call()
        try:
            result = await func(*args, **kwargs)
        except asyncio.CancelledError:
            # Dropped by the caller; says nothing about provider health
            with self._lock:
                if self._state == CircuitState.HALF_OPEN and self._half_open_calls > 0:
                    self._half_open_calls -= 1
            raise
        except Exception as exc:
            self._after_call(exc)
            raise
        self._after_call(None)
        return result

    def exclude(self, *exception_types: type[BaseException]) -> None:
        """Stop counting these exception types as failures."""
        with self._lock:
            self.excluded_exceptions = tuple(
                dict.fromkeys((*self.excluded_exceptions, *exception_types))
            )

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)

    def force_open(self) -> None:
        """Force the breaker OPEN (e.g. provider known to be down)."""
        with self._lock:
            self._transition_to(CircuitState.OPEN)
