"""Min/max envelope decimation."""

from __future__ import annotations

import numpy as np

from seisview.core.models.waveform import DecimatedSeries, Trace

DEFAULT_BINS = 1000


def _value_range(values: np.ndarray) -> tuple[float, float]:
    if len(values) == 0:
        return -1.0, 1.0
    return float(values.min()), float(values.max())


def envelope_indices(values: np.ndarray, bins: int) -> np.ndarray:
    """Indices of each bin's min and max sample, in increasing order.

    ``values`` is split into ``bins`` contiguous bins of ``len(values) // bins``
    samples; the last bin absorbs the remainder. Ties resolve to the lowest
    index, and a bin whose min and max are the same sample contributes it once.
    """
    n = len(values)
    size = n // bins
    head = (bins - 1) * size

    blocks = values[:head].reshape(bins - 1, size)
    offsets = np.arange(bins - 1, dtype=np.int64) * size
    tail = values[head:]
    mins = np.append(blocks.argmin(axis=1) + offsets, head + int(tail.argmin()))
    maxs = np.append(blocks.argmax(axis=1) + offsets, head + int(tail.argmax()))

    first = np.minimum(mins, maxs)
    second = np.maximum(mins, maxs)
    pairs = np.column_stack((first, second)).ravel()
    keep = np.ones(len(pairs), dtype=bool)
    keep[1::2] = second != first
    return pairs[keep]


def decimate(series: Trace | DecimatedSeries, bins: int = DEFAULT_BINS) -> DecimatedSeries:
    """Reduce ``series`` to at most ``2 * bins`` points preserving its envelope.

    Series already within the budget are returned unchanged; a
    :class:`DecimatedSeries` input is returned as the same object.
    """
    if bins <= 0:
        raise ValueError("bins must be positive")

    n = len(series)
    if n <= 2 * bins:
        if isinstance(series, DecimatedSeries):
            return series
        y_min, y_max = _value_range(series.values)
        return DecimatedSeries(
            channel_id=series.channel_id,
            times_ms=series.times_ms,
            values=series.values,
            y_min=y_min,
            y_max=y_max,
            source_length=n,
        )

    indices = envelope_indices(series.values, bins)
    values = series.values[indices]
    y_min, y_max = _value_range(values)
    return DecimatedSeries(
        channel_id=series.channel_id,
        times_ms=series.times_ms[indices],
        values=values,
        y_min=y_min,
        y_max=y_max,
        offset=series.offset if isinstance(series, DecimatedSeries) else 0.0,
        source_length=series.source_length if isinstance(series, DecimatedSeries) else n,
    )
