# portfolio_tracker/services/valuation/allocation.py
"""
Allocation breakdowns by asset type and by user category.

Only assets with a known, positive comparison value take part: a pending
asset has no value to allocate, and a zero-value asset would be an empty
slice. Percentages are 100 × group / total over the included assets, so
they sum to 100 up to rounding.

Ordering:
- by type: value descending (largest slice first)
- by category: named categories alphabetically (case-insensitive), the
  uncategorized bucket always last
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from portfolio_tracker.models import AssetType
from portfolio_tracker.services.constants import (
    ASSET_TYPE_COLORS,
    ASSET_TYPE_LABELS,
    HUNDRED,
    PERCENTAGE_PRECISION,
    UNCATEGORIZED_LABEL,
    ZERO,
)
from portfolio_tracker.services.valuation.types import AllocationBreakdown, AllocationSlice, AssetStats


@dataclass
class _Bucket:
    key: str | None
    label: str
    color: str | None
    value: Decimal = ZERO
    count: int = 0


class AllocationCalculator:
    """
    Groups asset values into allocation slices.

    Example:
        calc = AllocationCalculator()
        by_type = calc.by_type(portfolio_stats.assets)
        by_category = calc.by_category(portfolio_stats.assets, categories)
    """

    def by_type(self, asset_stats: Iterable[AssetStats]) -> AllocationBreakdown:
        """Allocation by asset type, largest first."""
        buckets: dict[str, _Bucket] = {}
        included, excluded = self._split(asset_stats)

        for stats in included:
            asset_type = AssetType(stats.asset_type)
            bucket = buckets.get(asset_type.value)
            if bucket is None:
                bucket = _Bucket(
                    key=asset_type.value,
                    label=ASSET_TYPE_LABELS.get(asset_type, asset_type.value),
                    color=ASSET_TYPE_COLORS.get(asset_type),
                )
                buckets[asset_type.value] = bucket
            bucket.value += stats.value_in_comparison
            bucket.count += 1

        ordered = sorted(buckets.values(), key=lambda b: (-b.value, b.label))
        return self._build(ordered, excluded_count=excluded)

    def by_category(
            self,
            asset_stats: Iterable[AssetStats],
            categories: Sequence[Any],
    ) -> AllocationBreakdown:
        """
        Allocation by category.

        Assets whose category_id is None, or names a category that no
        longer exists, fall into the uncategorized bucket.

        Args:
            asset_stats: Per-asset stats
            categories: Category rows (id, name, color)
        """
        all_stats = list(asset_stats)
        by_id = {c.id: c for c in categories}
        has_categorized = any(s.category_id is not None for s in all_stats)

        named: dict[str, _Bucket] = {}
        uncategorized = _Bucket(key=None, label=UNCATEGORIZED_LABEL, color=None)
        included, excluded = self._split(all_stats)

        for stats in included:
            category = by_id.get(stats.category_id) if stats.category_id else None
            if category is None:
                bucket = uncategorized
            else:
                bucket = named.get(category.id)
                if bucket is None:
                    bucket = _Bucket(key=category.id, label=category.name, color=category.color)
                    named[category.id] = bucket
            bucket.value += stats.value_in_comparison
            bucket.count += 1

        ordered = sorted(named.values(), key=lambda b: (b.label.casefold(), b.key))
        if uncategorized.count:
            ordered.append(uncategorized)

        breakdown = self._build(ordered, excluded_count=excluded)
        breakdown.has_categorized_assets = has_categorized
        return breakdown

    @staticmethod
    def _split(asset_stats: Iterable[AssetStats]) -> tuple[list[AssetStats], int]:
        included: list[AssetStats] = []
        excluded = 0
        for stats in asset_stats:
            value = stats.value_in_comparison
            if value is None or value <= ZERO:
                excluded += 1
            else:
                included.append(stats)
        return included, excluded

    @staticmethod
    def _build(buckets: list[_Bucket], excluded_count: int) -> AllocationBreakdown:
        total = sum((b.value for b in buckets), ZERO)
        slices = [
            AllocationSlice(
                key=b.key,
                label=b.label,
                value=b.value,
                percentage=(HUNDRED * b.value / total).quantize(PERCENTAGE_PRECISION)
                if total > ZERO else ZERO,
                asset_count=b.count,
                color=b.color,
            )
            for b in buckets
        ]
        return AllocationBreakdown(slices=slices, total=total, excluded_count=excluded_count)
