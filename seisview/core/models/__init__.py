"""Data models."""

from seisview.core.models.channel import (
    ChannelKey,
    FDSNSource,
    TimeWindow,
    WaveformRequest,
    to_epoch_ms,
)
from seisview.core.models.waveform import (
    DataQuality,
    DecimatedSeries,
    DecodeNotice,
    DecodeResult,
    Encoding,
    RawRecord,
    Segment,
    Trace,
)

__all__ = [
    "ChannelKey",
    "DataQuality",
    "DecimatedSeries",
    "DecodeNotice",
    "DecodeResult",
    "Encoding",
    "FDSNSource",
    "RawRecord",
    "Segment",
    "TimeWindow",
    "Trace",
    "WaveformRequest",
    "to_epoch_ms",
]
