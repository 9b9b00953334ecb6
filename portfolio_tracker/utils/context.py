# portfolio_tracker/utils/context.py
"""
Refresh context management.

Every valuation pass (a full recomputation of asset and portfolio
statistics) gets a refresh ID so that the price lookups, rate lookups and
provider retries it triggers can be correlated in the logs.

Uses Python's contextvars so the ID propagates through await calls and into
tasks created with asyncio.gather.

Usage:
    from portfolio_tracker.utils.context import refresh_scope

    with refresh_scope() as refresh_id:
        ...  # every log line emitted here carries refresh_id
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_refresh_id_var: ContextVar[str | None] = ContextVar("refresh_id", default=None)


# =============================================================================
# REFRESH ID
# =============================================================================

def get_refresh_id() -> str | None:
    """Return the refresh ID of the current valuation pass, if any."""
    return _refresh_id_var.get()


def set_refresh_id(refresh_id: str) -> None:
    """
    Set the refresh ID for the current context.

    Args:
        refresh_id: Unique identifier for this valuation pass
    """
    _refresh_id_var.set(refresh_id)


def clear_refresh_id() -> None:
    """Clear the refresh ID."""
    _refresh_id_var.set(None)


def generate_refresh_id() -> str:
    """Generate a short refresh ID (first 8 hex chars of a UUID4)."""
    return uuid.uuid4().hex[:8]


@contextmanager
def refresh_scope(refresh_id: str | None = None) -> Iterator[str]:
    """
    Bind a refresh ID for the duration of a block.

    Nested scopes reuse the outer ID so that a portfolio pass and the
    asset passes it triggers share one identifier.
    """
    existing = _refresh_id_var.get()
    if existing is not None and refresh_id is None:
        yield existing
        return

    token = _refresh_id_var.set(refresh_id or generate_refresh_id())
    try:
        yield _refresh_id_var.get()
    finally:
        _refresh_id_var.reset(token)
