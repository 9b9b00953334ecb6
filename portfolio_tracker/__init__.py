"""
Portfolio tracker: local-first lot accounting, live pricing and
multi-currency valuation for personal investment portfolios.
"""

__version__ = "0.1.0"
