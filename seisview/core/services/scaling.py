"""Display centring and outlier-robust value range."""

from __future__ import annotations

import math

import numpy as np

from seisview.core.models.waveform import DecimatedSeries


def demean(values: np.ndarray) -> tuple[np.ndarray, float]:
    """Return ``values`` minus their mean, and the mean."""
    if len(values) == 0:
        return np.asarray(values, dtype=np.float64), 0.0
    mean = float(np.mean(values, dtype=np.float64))
    return np.asarray(values, dtype=np.float64) - mean, mean


def percentile_range(
    values: np.ndarray,
    lower: float = 1.0,
    upper: float = 99.0,
    padding_fraction: float = 0.1,
    min_padding: float = 1.0,
) -> tuple[float, float]:
    """Nearest-rank percentile bounds of ``values`` padded on each side.

    The padding is ``padding_fraction`` of the span, or ``min_padding`` when
    the span is zero, so the range always has positive width. Values outside
    the range are expected.
    """
    n = len(values)
    if n == 0:
        return -min_padding, min_padding

    ordered = np.sort(values)
    low = float(ordered[math.floor(n * (lower / 100.0))])
    high = float(ordered[min(math.floor(n * (upper / 100.0)), n - 1)])
    span = high - low
    padding = span * padding_fraction if span > 0 else min_padding
    return low - padding, high + padding


def scale_for_display(
    series: DecimatedSeries,
    lower: float = 1.0,
    upper: float = 99.0,
    padding_fraction: float = 0.1,
    min_padding: float = 1.0,
) -> DecimatedSeries:
    """Demean ``series`` and attach the suggested y-range."""
    values, mean = demean(series.values)
    y_min, y_max = percentile_range(values, lower, upper, padding_fraction, min_padding)
    return DecimatedSeries(
        channel_id=series.channel_id,
        times_ms=series.times_ms,
        values=values,
        y_min=y_min,
        y_max=y_max,
        offset=series.offset + mean,
        source_length=series.source_length,
    )
