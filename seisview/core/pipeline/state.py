"""Pipeline run states and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from seisview.core.exceptions import SeisviewError
from seisview.core.models.channel import WaveformRequest
from seisview.core.models.waveform import DecimatedSeries, DecodeNotice


class PipelineStatus(str, Enum):
    """Lifecycle of one visualisation's pipeline."""

    IDLE = "idle"
    FETCHING = "fetching"
    DECODING = "decoding"
    READY = "ready"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class WaveformResult:
    """Display-ready output of one run.

    ``no_data`` marks an empty but valid result: nothing decodable for the
    requested channel and window.
    """

    channel_id: str
    series: DecimatedSeries
    notices: tuple[DecodeNotice, ...] = field(default_factory=tuple)
    segment_count: int = 0
    sample_count: int = 0
    no_data: bool = False

    @property
    def y_range(self) -> tuple[float, float]:
        return self.series.y_min, self.series.y_max

    @classmethod
    def empty(cls, channel_id: str, notices: tuple[DecodeNotice, ...] = ()) -> WaveformResult:
        return cls(
            channel_id=channel_id,
            series=DecimatedSeries.empty(channel_id),
            notices=notices,
            no_data=True,
        )


@dataclass(slots=True, frozen=True)
class PipelineState:
    """Snapshot published to state listeners."""

    status: PipelineStatus
    run_id: int = 0
    request: WaveformRequest | None = None
    result: WaveformResult | None = None
    error: SeisviewError | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {PipelineStatus.READY, PipelineStatus.FAILED, PipelineStatus.CANCELLED}
