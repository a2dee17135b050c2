"""Group decoded records into contiguous per-channel segments."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np
from loguru import logger

from seisview.core.models.waveform import RawRecord, Segment

DEFAULT_GAP_TOLERANCE = 0.5


@dataclass(slots=True)
class _SegmentBuilder:
    first: RawRecord
    chunks: list[np.ndarray] = field(default_factory=list)
    end_epoch: float = 0.0

    def accepts(self, record: RawRecord, tolerance: float) -> bool:
        if record.sample_rate != self.first.sample_rate:
            return False
        period = 1.0 / record.sample_rate
        return abs(record.start_epoch - self.end_epoch) <= tolerance * period

    def append(self, record: RawRecord) -> None:
        self.chunks.append(record.samples)
        self.end_epoch += record.sample_count / record.sample_rate

    def build(self) -> Segment:
        return Segment(
            channel_id=self.first.channel_id,
            start_time=self.first.start_time,
            sample_rate=self.first.sample_rate,
            samples=np.concatenate(self.chunks),
        )


def _start_builder(record: RawRecord) -> _SegmentBuilder:
    builder = _SegmentBuilder(first=record, end_epoch=record.start_epoch)
    builder.append(record)
    return builder


def assemble_segments(
    records: Iterable[RawRecord],
    gap_tolerance: float = DEFAULT_GAP_TOLERANCE,
) -> dict[str, list[Segment]]:
    """Group records by channel into time-ordered, gap-free segments.

    Records are stable-sorted by start time so that ties keep buffer order. A
    new segment starts when the next record begins more than
    ``gap_tolerance`` sample periods away from the end of the current one, or
    when the sample rate changes.

    Returns:
        mapping of channel id to segments, channels in first-seen order of the
        sorted stream
    """
    ordered = sorted(records, key=lambda record: record.start_epoch)

    builders: dict[str, list[_SegmentBuilder]] = {}
    for record in ordered:
        channel_builders = builders.setdefault(record.channel_id, [])
        if channel_builders and channel_builders[-1].accepts(record, gap_tolerance):
            channel_builders[-1].append(record)
        else:
            channel_builders.append(_start_builder(record))

    segments = {channel: [builder.build() for builder in items] for channel, items in builders.items()}
    for channel, items in segments.items():
        logger.debug(
            "Assembled {count} segment(s) for {channel}",
            count=len(items),
            channel=channel,
        )
    return segments
