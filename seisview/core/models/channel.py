"""Channel identity and request models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def to_epoch_ms(moment: datetime) -> float:
    """Milliseconds since the Unix epoch for an aware or naive-UTC datetime."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    # integer microseconds keep millisecond values exact
    return ((moment - _EPOCH) // timedelta(microseconds=1)) / 1000.0


class FDSNSource(str, Enum):
    """Preset FDSN web-service data centres."""

    IRIS = "https://service.iris.edu"
    ORFEUS = "https://www.orfeus-eu.org"


class ChannelKey(BaseModel):
    """``{network, station, location, channel}`` identifying one data stream."""

    model_config = ConfigDict(frozen=True)

    network: str = Field(min_length=1, max_length=2)
    station: str = Field(min_length=1, max_length=5)
    location: str = Field(default="", max_length=2)
    channel: str = Field(min_length=1, max_length=3)

    @field_validator("network", "station", "location", "channel", mode="before")
    @classmethod
    def _normalise_code(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().upper()
            if value == "--":
                return ""
        return value

    @classmethod
    def parse(cls, channel_id: str) -> ChannelKey:
        """Parse ``NET.STA.LOC.CHA``; the location part may be empty."""
        parts = channel_id.split(".")
        if len(parts) != 4:
            raise ValueError(f"channel id must look like NET.STA.LOC.CHA, got {channel_id!r}")
        network, station, location, channel = parts
        return cls(network=network, station=station, location=location, channel=channel)

    def __str__(self) -> str:
        return f"{self.network}.{self.station}.{self.location}.{self.channel}"


class TimeWindow(BaseModel):
    """Requested ``[start, end]`` interval, always in UTC."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @model_validator(mode="after")
    def _check_order(self) -> TimeWindow:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def start_ms(self) -> float:
        return to_epoch_ms(self.start)

    @property
    def end_ms(self) -> float:
        return to_epoch_ms(self.end)


class WaveformRequest(BaseModel):
    """One fetch-and-render request for a single channel."""

    channel: ChannelKey
    window: TimeWindow
    bins: int | None = Field(default=None, gt=0, description="Overrides the configured bin count")

    @property
    def channel_id(self) -> str:
        return str(self.channel)
