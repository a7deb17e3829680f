"""
Summary statistics over simulated output dimensions.

Percentiles use linear interpolation between order statistics
(rank = p / 100 x (n - 1)); the standard deviation is the population one.
Histograms use a fixed bucket count spanning the observed min..max.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from bizcase.models.results import ConfidenceInterval, HistogramBucket

PERCENTILES = (10, 25, 50, 75, 90)


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linear-interpolated percentile of already sorted values."""
    n = len(sorted_values)
    if n == 0:
        raise ValueError("percentile of an empty sequence")
    if not 0 <= p <= 100:
        raise ValueError(f"p must be 0-100, got {p}")

    rank = (p / 100.0) * (n - 1)
    lower = int(np.floor(rank))
    upper = min(lower + 1, n - 1)
    weight = rank - lower
    a = float(sorted_values[lower])
    b = float(sorted_values[upper])
    if a == b:
        return a
    return min(a + (b - a) * weight, b)


def confidence_interval(values: np.ndarray) -> ConfidenceInterval:
    """Percentile summary, mean, and population std of one dimension."""
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        raise ValueError("confidence interval of an empty sample")

    ordered = np.sort(values)
    p10, p25, p50, p75, p90 = (percentile(ordered, p) for p in PERCENTILES)
    if ordered[0] == ordered[-1]:
        # summation noise would otherwise leak into a constant sample
        mean, std_dev = float(ordered[0]), 0.0
    else:
        mean, std_dev = float(np.mean(values)), float(np.std(values))
    return ConfidenceInterval(
        p10=p10,
        p25=p25,
        p50=p50,
        p75=p75,
        p90=p90,
        mean=mean,
        std_dev=std_dev,
        min=float(ordered[0]),
        max=float(ordered[-1]),
    )


def bucket_indices(values: np.ndarray, lo: float, hi: float, bucket_count: int) -> np.ndarray:
    """floor((v - min) / width), clamped so ``max`` lands in the last bucket."""
    width = (hi - lo) / bucket_count
    indices = np.floor((values - lo) / width).astype(int)
    return np.clip(indices, 0, bucket_count - 1)


def build_histogram(values: np.ndarray, bucket_count: int = 20) -> list[HistogramBucket]:
    """Fixed-bucket-count histogram over the observed range.

    A zero-width range (every value identical) collapses to a single
    populated bucket instead of dividing by zero.
    """
    values = np.asarray(values, dtype=float)
    if bucket_count <= 0:
        raise ValueError(f"bucket_count must be greater than 0, got {bucket_count}")
    n = values.size
    if n == 0:
        return []

    lo = float(values.min())
    hi = float(values.max())
    if hi == lo:
        return [HistogramBucket(min=lo, max=hi, count=n, frequency=1.0)]

    counts = np.bincount(bucket_indices(values, lo, hi, bucket_count), minlength=bucket_count)
    width = (hi - lo) / bucket_count
    buckets = []
    for i, count in enumerate(counts):
        start = lo + i * width
        end = hi if i == bucket_count - 1 else lo + (i + 1) * width
        buckets.append(
            HistogramBucket(min=start, max=end, count=int(count), frequency=int(count) / n)
        )
    return buckets


def fraction(mask: np.ndarray, total: int) -> float:
    """Share of ``total`` iterations satisfying ``mask``, in [0, 1]."""
    if total <= 0:
        raise ValueError(f"total must be greater than 0, got {total}")
    return float(np.count_nonzero(mask)) / total
