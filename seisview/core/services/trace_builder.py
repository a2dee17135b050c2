"""Concatenate one channel's segments into a single trace."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import numpy as np
from loguru import logger

from seisview.core.exceptions import NoDataError
from seisview.core.models.channel import ChannelKey, TimeWindow
from seisview.core.models.waveform import Segment, Trace


def select_channel(
    segments_by_channel: Mapping[str, Sequence[Segment]],
    channel: ChannelKey | str | None = None,
) -> tuple[str, Sequence[Segment]]:
    """Pick the segments for ``channel``, or the first channel when ``None``.

    Raises:
        NoDataError: the channel is absent or has no segments
    """
    if channel is None:
        if not segments_by_channel:
            raise NoDataError("buffer contains no channels")
        channel_id = next(iter(segments_by_channel))
    else:
        channel_id = str(channel)

    segments = segments_by_channel.get(channel_id) or []
    if not segments:
        raise NoDataError(
            f"no data for {channel_id}",
            channel=channel_id,
            details={"available": list(segments_by_channel)},
        )
    return channel_id, segments


def build_trace(
    segments: Sequence[Segment],
    window: TimeWindow | None = None,
    *,
    channel_id: str | None = None,
) -> Trace:
    """Concatenate segments in time order without interpolating gaps.

    Samples that would step backwards in time (overlapping or duplicate
    records) are dropped. With ``window`` the trace is trimmed to
    ``[window.start, window.end]``.

    Raises:
        NoDataError: no samples remain
    """
    if not segments:
        raise NoDataError("no segments to build a trace from", channel=channel_id)
    channel_id = channel_id or segments[0].channel_id

    times_parts: list[np.ndarray] = []
    value_parts: list[np.ndarray] = []
    last_time = -np.inf
    for segment in sorted(segments, key=lambda item: item.start_ms):
        times = segment.times_ms()
        keep = times > last_time
        if not keep.all():
            dropped = int((~keep).sum())
            logger.debug(
                "Dropping {dropped} overlapping sample(s) in {channel}",
                dropped=dropped,
                channel=channel_id,
            )
            times = times[keep]
            values = segment.samples[keep]
        else:
            values = segment.samples
        if len(times) == 0:
            continue
        times_parts.append(times)
        value_parts.append(values.astype(np.float64))
        last_time = times[-1]

    if not times_parts:
        raise NoDataError(f"no samples for {channel_id}", channel=channel_id)

    times_ms = np.concatenate(times_parts)
    values = np.concatenate(value_parts)

    if window is not None:
        inside = (times_ms >= window.start_ms) & (times_ms <= window.end_ms)
        times_ms = times_ms[inside]
        values = values[inside]
        if len(times_ms) == 0:
            raise NoDataError(
                f"no samples for {channel_id} inside the requested window",
                channel=channel_id,
            )

    return Trace(
        channel_id=channel_id,
        times_ms=times_ms,
        values=values,
        segment_count=len(times_parts),
    )
