from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from .asset import Asset


class ProgressItem(Protocol):
    @property
    def current_value(self) -> Decimal: ...

    @property
    def target_value(self) -> Decimal | None: ...


@dataclass(frozen=True)
class ProgressInput:
    current_value: Decimal
    target_value: Decimal | None = None

    @classmethod
    def from_asset(cls, asset: Asset) -> ProgressInput:
        return cls(current_value=asset.current_value, target_value=asset.target_value)


class OverallProgressCalculator:
    """Value-weighted average of per-item progress.

    Every targeted item contributes ``clamp(current / target, 0, 1) * target``
    and the sum is divided by the total target value, so larger targets weigh
    proportionally more. Untargeted items are left out of the aggregate.
    """

    def calculate(self, items: Iterable[ProgressItem]) -> Decimal | None:
        materialized = list(items)
        total_weight = sum((item.target_value or Decimal(0) for item in materialized), start=Decimal(0))
        if total_weight <= 0:
            return None

        weighted_progress = Decimal(0)
        for item in materialized:
            target_value = item.target_value
            if not target_value or target_value <= 0:
                continue
            progress = min(max(item.current_value / target_value, Decimal(0)), Decimal(1))
            weighted_progress += progress * target_value

        return weighted_progress / total_weight


__all__ = ["OverallProgressCalculator", "ProgressInput", "ProgressItem"]
