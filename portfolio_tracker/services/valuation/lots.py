# portfolio_tracker/services/valuation/lots.py
"""
Lot resolution: turn an asset's transactions into open lots.

Every buy opens a lot. Every sell names, through lot_id, the buy whose lot
it reduces (explicit lot matching; there is no FIFO/LIFO fallback).

    remaining(lot) = lot.buy.quantity - Σ sell.quantity for sells with lot_id == lot.id

Lots with remaining <= 0 are closed and omitted. Sells that reference no
lot, or a lot that is not among the supplied buys, reduce nothing; the
diagnostic variant reports them so the caller can surface them instead of
losing them silently.

The resolver is pure: no storage access, no clock, never raises on data
inconsistencies (an over-sold lot is simply closed).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from portfolio_tracker.models import TransactionType
from portfolio_tracker.services.valuation.types import Lot, LotResolution

logger = logging.getLogger(__name__)


class LotResolver:
    """
    Derives open lots from buy/sell transactions.

    Accepts any objects exposing id, asset_id, transaction_type, quantity,
    price_per_unit, date, notes and lot_id (ORM rows or plain dataclasses).

    Example:
        resolver = LotResolver()
        lots = resolver.resolve(transactions)
        held = sum(lot.remaining_quantity for lot in lots)
    """

    def resolve(self, transactions: Iterable[Any]) -> list[Lot]:
        """
        Return the open lots, in the order their buys were supplied.

        Args:
            transactions: All transactions of one asset, any order

        Returns:
            One Lot per buy with remaining quantity > 0
        """
        return self.resolve_with_diagnostics(transactions).lots

    def resolve_with_diagnostics(self, transactions: Iterable[Any]) -> LotResolution:
        """
        Resolve lots and report sells that matched no lot.

        Conservation (checked in tests):
            Σ lot.remaining + Σ matched sell quantity == Σ buy quantity
            (as long as no lot is over-sold)
        """
        buys: list[Any] = []
        sells: list[Any] = []
        for txn in transactions:
            if txn.transaction_type == TransactionType.BUY:
                buys.append(txn)
            elif txn.transaction_type == TransactionType.SELL:
                sells.append(txn)

        buy_ids = {buy.id for buy in buys}
        sold_by_lot: dict[str, Decimal] = {}
        unmatched: list[Any] = []

        for sell in sells:
            if sell.lot_id is None or sell.lot_id not in buy_ids:
                unmatched.append(sell)
                continue
            sold_by_lot[sell.lot_id] = sold_by_lot.get(sell.lot_id, Decimal("0")) + sell.quantity

        if unmatched:
            logger.debug(f"{len(unmatched)} sell(s) reference no known lot")

        lots: list[Lot] = []
        for buy in buys:
            sold = sold_by_lot.get(buy.id, Decimal("0"))
            remaining = buy.quantity - sold
            if remaining <= 0:
                continue

            lots.append(Lot(
                id=buy.id,
                asset_id=buy.asset_id,
                buy_transaction_id=buy.id,
                original_quantity=buy.quantity,
                remaining_quantity=remaining,
                purchase_price=buy.price_per_unit,
                purchase_date=buy.date,
                notes=buy.notes,
            ))

        return LotResolution(lots=lots, unmatched_sells=unmatched, sold_by_lot=sold_by_lot)

    def remaining_for_lot(self, transactions: Iterable[Any], lot_id: str) -> Decimal | None:
        """
        Remaining quantity of one lot, clamped at zero.

        Returns:
            Remaining quantity, or None if lot_id names no buy
        """
        txns = list(transactions)
        buy = next(
            (t for t in txns if t.id == lot_id and t.transaction_type == TransactionType.BUY),
            None,
        )
        if buy is None:
            return None

        sold = sum(
            (t.quantity for t in txns
             if t.transaction_type == TransactionType.SELL and t.lot_id == lot_id),
            Decimal("0"),
        )
        return max(buy.quantity - sold, Decimal("0"))
