"""Waveform data types flowing through the decode pipeline.

Every value here is created fresh for one pipeline run and never shared
between runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

import numpy as np

from seisview.core.models.channel import to_epoch_ms


class Encoding(IntEnum):
    """SEED data encoding codes (blockette 1000, field 3)."""

    ASCII = 0
    INT16 = 1
    INT24 = 2
    INT32 = 3
    FLOAT32 = 4
    FLOAT64 = 5
    STEIM1 = 10
    STEIM2 = 11


class DataQuality(str, Enum):
    """Data header/quality indicator."""

    UNKNOWN = "D"
    RAW = "R"
    QUALITY_CONTROLLED = "Q"
    MODIFIED = "M"


def _readonly(values: np.ndarray) -> np.ndarray:
    values.flags.writeable = False
    return values


@dataclass(slots=True, frozen=True, eq=False)
class RawRecord:
    """One decoded miniSEED record."""

    channel_id: str
    start_time: datetime
    sample_rate: float
    sample_count: int
    encoding: Encoding
    payload: bytes
    samples: np.ndarray
    sequence_number: int = 0
    quality: DataQuality = DataQuality.UNKNOWN
    offset: int = 0
    record_length: int = 0

    def __post_init__(self) -> None:
        _readonly(self.samples)

    @property
    def start_epoch(self) -> float:
        """Start time in seconds since the epoch."""
        return to_epoch_ms(self.start_time) / 1000.0

    @property
    def end_epoch(self) -> float:
        """Time one sample period after the last sample."""
        return self.start_epoch + self.sample_count / self.sample_rate


@dataclass(slots=True, frozen=True, eq=False)
class Segment:
    """Gap-free run of samples at a fixed rate."""

    channel_id: str
    start_time: datetime
    sample_rate: float
    samples: np.ndarray

    def __post_init__(self) -> None:
        _readonly(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def start_ms(self) -> float:
        return to_epoch_ms(self.start_time)

    @property
    def end_ms(self) -> float:
        """Time one sample period after the last sample."""
        return self.start_ms + len(self.samples) * 1000.0 / self.sample_rate

    def times_ms(self) -> np.ndarray:
        """Absolute timestamp of every sample in milliseconds."""
        return self.start_ms + np.arange(len(self.samples), dtype=np.float64) * (1000.0 / self.sample_rate)


@dataclass(slots=True, frozen=True, eq=False)
class Trace:
    """Logical time series for one channel; times are non-decreasing."""

    channel_id: str
    times_ms: np.ndarray
    values: np.ndarray
    segment_count: int = 1

    def __post_init__(self) -> None:
        if len(self.times_ms) != len(self.values):
            raise ValueError("times_ms and values must have the same length")
        _readonly(self.times_ms)
        _readonly(self.values)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def points(self) -> list[tuple[float, float]]:
        return list(zip(self.times_ms.tolist(), self.values.tolist()))


@dataclass(slots=True, frozen=True, eq=False)
class DecimatedSeries:
    """Display-ready series with a suggested value-axis range.

    ``offset`` is the mean removed by display scaling; add it back to recover
    the recorded amplitudes.
    """

    channel_id: str
    times_ms: np.ndarray
    values: np.ndarray
    y_min: float
    y_max: float
    offset: float = 0.0
    source_length: int = 0

    def __post_init__(self) -> None:
        if len(self.times_ms) != len(self.values):
            raise ValueError("times_ms and values must have the same length")
        _readonly(self.times_ms)
        _readonly(self.values)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def points(self) -> list[tuple[float, float]]:
        return list(zip(self.times_ms.tolist(), self.values.tolist()))

    @classmethod
    def empty(cls, channel_id: str) -> DecimatedSeries:
        return cls(
            channel_id=channel_id,
            times_ms=np.empty(0, dtype=np.float64),
            values=np.empty(0, dtype=np.float64),
            y_min=-1.0,
            y_max=1.0,
        )


@dataclass(slots=True, frozen=True)
class DecodeNotice:
    """A record the decoder skipped."""

    index: int
    offset: int
    code: str
    message: str


@dataclass(slots=True, frozen=True)
class DecodeResult:
    """Records decoded from one buffer plus notices for skipped ones."""

    records: tuple[RawRecord, ...]
    notices: tuple[DecodeNotice, ...] = field(default_factory=tuple)

    @property
    def channel_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for record in self.records:
            seen.setdefault(record.channel_id, None)
        return list(seen)
