from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np


@dataclass(frozen=True)
class SweepPlan:
    values: Tuple[float, ...]
    center_index: int

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    @property
    def center(self) -> float:
        return self.values[self.center_index]

    @property
    def minimum(self) -> float:
        return min(self.values)

    @property
    def maximum(self) -> float:
        return max(self.values)


def plan_sweep(center: float, spread: float, count: int) -> SweepPlan:
    """Linearly spaced values over [center - spread, center + spread].

    An even ``count`` is bumped by one so the plan has a unique middle point,
    and that point is pinned to ``center`` so the reference value appears
    exactly rather than as a linspace rounding of it.
    """
    count = int(count)
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")
    if count % 2 == 0:
        count += 1

    center = float(center)
    spread = float(spread)
    values = np.linspace(center - spread, center + spread, count)
    mid = count // 2
    values[mid] = center
    return SweepPlan(values=tuple(float(v) for v in values), center_index=mid)
