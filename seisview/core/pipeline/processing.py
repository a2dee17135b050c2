"""Synchronous decode-to-display pipeline for one buffer."""

from __future__ import annotations

from loguru import logger

from seisview.core.config import SeisviewConfig
from seisview.core.data.miniseed import decode_records
from seisview.core.exceptions import DecodeFailedError, NoDataError
from seisview.core.logging import PerformanceLogger
from seisview.core.models.channel import ChannelKey, TimeWindow
from seisview.core.pipeline.cancellation import CancellationToken
from seisview.core.pipeline.state import WaveformResult
from seisview.core.services import (
    assemble_segments,
    build_trace,
    decimate,
    scale_for_display,
    select_channel,
)


@PerformanceLogger("process_buffer")
def process_buffer(
    buffer: bytes | bytearray | memoryview,
    channel: ChannelKey | str | None = None,
    window: TimeWindow | None = None,
    *,
    config: SeisviewConfig | None = None,
    bins: int | None = None,
    token: CancellationToken | None = None,
) -> WaveformResult:
    """Decode, assemble, decimate and scale ``buffer`` for one channel.

    Args:
        buffer: concatenated miniSEED records
        channel: channel to render; the first channel in the buffer when omitted
        window: requested interval, used for trimming when enabled
        config: pipeline and decoder settings
        bins: overrides ``config.pipeline.bins``
        token: polled between stages

    Returns:
        WaveformResult: ``no_data`` is set when nothing usable was found

    Raises:
        DecodeFailedError: the buffer is non-empty but no record was usable
        DecodeAbortedError: ``token`` was cancelled
    """
    config = config or SeisviewConfig()
    settings = config.pipeline
    requested = str(channel) if channel is not None else ""

    decoded = decode_records(buffer, config.decoder)
    if not decoded.records:
        if decoded.notices:
            raise DecodeFailedError(
                f"none of {len(decoded.notices)} record(s) could be decoded",
                notice_count=len(decoded.notices),
                details={"codes": sorted({notice.code for notice in decoded.notices})},
            )
        logger.info("Buffer of {size} bytes holds no records", size=len(buffer))
        return WaveformResult.empty(requested, decoded.notices)

    if token is not None:
        token.raise_if_cancelled("segment assembly")
    segments_by_channel = assemble_segments(decoded.records, settings.gap_tolerance)

    try:
        channel_id, segments = select_channel(segments_by_channel, channel)
        trace = build_trace(
            segments,
            window if settings.trim_to_window else None,
            channel_id=channel_id,
        )
    except NoDataError as exc:
        logger.info("No data: {reason}", reason=exc.message, channel=exc.channel)
        return WaveformResult.empty(exc.channel or requested, decoded.notices)

    if token is not None:
        token.raise_if_cancelled("decimation")
    series = decimate(trace, bins or settings.bins)

    if token is not None:
        token.raise_if_cancelled("display scaling")
    series = scale_for_display(
        series,
        settings.lower_percentile,
        settings.upper_percentile,
        settings.padding_fraction,
        settings.min_padding,
    )

    return WaveformResult(
        channel_id=channel_id,
        series=series,
        notices=decoded.notices,
        segment_count=trace.segment_count,
        sample_count=len(trace),
    )
