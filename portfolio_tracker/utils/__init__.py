# portfolio_tracker/utils/__init__.py
"""
Cross-cutting utilities.

- logging: Logging configuration with refresh ID support
- context: Refresh ID management for valuation passes

Usage:
    from portfolio_tracker.utils import setup_logging
    from portfolio_tracker.utils import refresh_scope, get_refresh_id
"""

from portfolio_tracker.utils.context import (
    get_refresh_id,
    set_refresh_id,
    clear_refresh_id,
    refresh_scope,
)
from portfolio_tracker.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_refresh_id",
    "set_refresh_id",
    "clear_refresh_id",
    "refresh_scope",
]
