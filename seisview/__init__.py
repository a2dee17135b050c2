"""seisview - seismic waveform decode and display pipeline.

Turns raw miniSEED byte buffers into bounded-size, envelope-preserving
series with a robust display range.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

from seisview.core.client import DataselectClient
from seisview.core.config import SeisviewConfig
from seisview.core.models.channel import ChannelKey, FDSNSource, TimeWindow, WaveformRequest
from seisview.core.pipeline import (
    PipelineState,
    PipelineStatus,
    WaveformPipeline,
    WaveformResult,
    process_buffer,
)

__version__ = "0.1.0"


def render(
    buffer: bytes,
    channel: str | ChannelKey | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    bins: int | None = None,
    config: SeisviewConfig | None = None,
) -> WaveformResult:
    """Render a miniSEED buffer synchronously.

    Examples:
        >>> import seisview
        >>> result = seisview.render(open("anmo.mseed", "rb").read(), "IU.ANMO.00.BHZ")
        >>> result.y_range
    """
    window = TimeWindow(start=start, end=end) if start is not None and end is not None else None
    key = ChannelKey.parse(channel) if isinstance(channel, str) else channel
    return process_buffer(buffer, key, window, config=config, bins=bins)


def fetch(
    channel: str | ChannelKey,
    start: datetime,
    end: datetime,
    bins: int | None = None,
    source: FDSNSource | None = None,
    config: SeisviewConfig | None = None,
) -> PipelineState | None:
    """Fetch a channel from an FDSN dataselect service and render it."""
    config = config or SeisviewConfig()
    key = ChannelKey.parse(channel) if isinstance(channel, str) else channel
    request = WaveformRequest(channel=key, window=TimeWindow(start=start, end=end), bins=bins)

    async def _run() -> PipelineState | None:
        async with DataselectClient(config.fetch, source=source) as client:
            return await WaveformPipeline(client, config).load(request)

    return asyncio.run(_run())


__all__ = [
    "ChannelKey",
    "DataselectClient",
    "FDSNSource",
    "PipelineState",
    "PipelineStatus",
    "SeisviewConfig",
    "TimeWindow",
    "WaveformPipeline",
    "WaveformRequest",
    "WaveformResult",
    "__version__",
    "fetch",
    "process_buffer",
    "render",
]
