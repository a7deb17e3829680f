"""
Random draws around user-asserted assumptions.

Each uncertain input is drawn independently around its asserted value:
  - Triangular: (max(0, base - s), base, base + s)  (default)
  - Normal:     mean = base, sigma = s / 3, clamped at 0
  - Uniform:    over the triangular bounds

where s = |base| x spread_percent / 100. When s cannot move the bounds off
the base (a zero spread or a zero base included) the base value is returned
exactly, so a run with every spread set to 0 is fully deterministic.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from bizcase.models.enums import DistributionType


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Fresh generator per run; ``None`` draws entropy from the OS."""
    return np.random.default_rng(seed)


def spread_bounds(base: float, spread_percent: float) -> tuple[float, float]:
    spread = abs(base) * (spread_percent / 100.0)
    return max(0.0, base - spread), base + spread


def draw(
    rng: np.random.Generator,
    base: float,
    spread_percent: float,
    distribution: DistributionType,
    size: int,
) -> np.ndarray:
    """Draw ``size`` non-negative values around ``base``."""
    spread = abs(base) * (spread_percent / 100.0)
    low, high = spread_bounds(base, spread_percent)
    # A spread below float resolution collapses the bounds onto the base
    if spread == 0 or low == high:
        return np.full(size, float(base))

    if distribution == DistributionType.NORMAL:
        values = rng.normal(loc=base, scale=spread / 3.0, size=size)
    elif distribution == DistributionType.TRIANGULAR:
        values = rng.triangular(left=low, mode=base, right=high, size=size)
    elif distribution == DistributionType.UNIFORM:
        values = rng.uniform(low=low, high=high, size=size)
    else:
        raise ValueError(f"Unknown distribution: {distribution!r}")

    return np.maximum(values, 0.0)


def draw_multiplier(
    rng: np.random.Generator,
    spread: float,
    distribution: DistributionType,
    size: int,
) -> np.ndarray:
    """Per-draw scenario multiplier around 1.0 (spread 0.3 -> 0.7..1.3)."""
    return draw(rng, 1.0, spread * 100.0, distribution, size)
