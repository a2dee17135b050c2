"""miniSEED 2 fixed header and blockette parsing."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from seisview.core.exceptions import MalformedHeaderError
from seisview.core.models.waveform import DataQuality

FIXED_HEADER_SIZE = 48
MIN_RECORD_LENGTH = 128
MAX_RECORD_EXPONENT = 20

# Sequence number, quality, reserved, station, location, channel, network,
# BTIME (year, day, hour, minute, second, unused, 1/10000 s), sample count,
# rate factor, rate multiplier, activity/io/quality flags, blockette count,
# time correction, data offset, first blockette offset.
_FIXED_FORMAT = "6sc x5s2s3s2s HHBBBxH H hh BBBB i HH"
_FIXED = {order: struct.Struct(order + _FIXED_FORMAT) for order in (">", "<")}
_BLOCKETTE_HEAD = {order: struct.Struct(order + "HH") for order in (">", "<")}
_B1000 = {order: struct.Struct(order + "HHBBBx") for order in (">", "<")}
_B1001 = {order: struct.Struct(order + "HHBbBB") for order in (">", "<")}

_SEQUENCE_CHARS = frozenset(b"0123456789 \x00")
_QUALITY_CHARS = frozenset(b"DRQM")
_TIME_CORRECTION_APPLIED = 0x02


@dataclass(slots=True, frozen=True)
class RecordHeader:
    """Fields of one record header needed to decode its samples."""

    sequence_number: int
    quality: DataQuality
    network: str
    station: str
    location: str
    channel: str
    start_time: datetime
    sample_count: int
    sample_rate: float
    data_offset: int
    record_length: int
    encoding: int
    byte_order: str
    word_order: str

    @property
    def channel_id(self) -> str:
        return f"{self.network}.{self.station}.{self.location}.{self.channel}"


def sample_rate_from(factor: int, multiplier: int) -> float:
    """Nominal sample rate in Hz from the SEED factor/multiplier pair."""
    if factor == 0 or multiplier == 0:
        return 0.0
    if factor > 0 and multiplier > 0:
        return float(factor * multiplier)
    if factor > 0:
        return -factor / multiplier
    if multiplier > 0:
        return -multiplier / factor
    return 1.0 / (factor * multiplier)


def detect_byte_order(buffer: bytes | memoryview, offset: int) -> str | None:
    """Return ``">"`` or ``"<"`` depending on which order gives a sane BTIME."""
    for order in (">", "<"):
        year, day = struct.unpack_from(order + "HH", buffer, offset + 20)
        if 1900 <= year <= 2100 and 1 <= day <= 366:
            return order
    return None


def looks_like_header(buffer: bytes | memoryview, offset: int) -> bool:
    """Cheap check used when scanning for the next record after corruption."""
    if offset + FIXED_HEADER_SIZE > len(buffer):
        return False
    if not all(char in _SEQUENCE_CHARS for char in bytes(buffer[offset : offset + 6])):
        return False
    if buffer[offset + 6] not in _QUALITY_CHARS:
        return False
    return detect_byte_order(buffer, offset) is not None


def _decode_code(raw: bytes) -> str:
    return raw.decode("ascii", errors="replace").strip(" \x00")


def parse_header(
    buffer: bytes | memoryview,
    offset: int,
    *,
    fallback_record_length: int | None = None,
    fallback_encoding: int | None = None,
) -> RecordHeader:
    """Parse the fixed header and blockettes of the record at ``offset``.

    Raises:
        MalformedHeaderError: the bytes do not describe a usable record header
    """
    if offset + FIXED_HEADER_SIZE > len(buffer):
        raise MalformedHeaderError(
            f"{len(buffer) - offset} bytes left, need {FIXED_HEADER_SIZE} for a header",
            offset,
        )

    raw_sequence = bytes(buffer[offset : offset + 6])
    if not all(char in _SEQUENCE_CHARS for char in raw_sequence):
        raise MalformedHeaderError(f"invalid sequence number {raw_sequence!r}", offset)
    if buffer[offset + 6] not in _QUALITY_CHARS:
        raise MalformedHeaderError(f"invalid quality indicator {bytes(buffer[offset + 6:offset + 7])!r}", offset)

    byte_order = detect_byte_order(buffer, offset)
    if byte_order is None:
        raise MalformedHeaderError("start time is not plausible in either byte order", offset)

    (
        sequence,
        quality,
        station,
        location,
        channel,
        network,
        year,
        day,
        hour,
        minute,
        second,
        fract,
        sample_count,
        rate_factor,
        rate_multiplier,
        activity_flags,
        _io_flags,
        _quality_flags,
        blockette_count,
        time_correction,
        data_offset,
        blockette_offset,
    ) = _FIXED[byte_order].unpack_from(buffer, offset)

    if hour > 23 or minute > 59 or second > 60 or fract > 9999:
        raise MalformedHeaderError("start time fields out of range", offset)

    record_length: int | None = None
    encoding: int | None = None
    word_order = byte_order
    microseconds = 0

    visited: set[int] = set()
    position = blockette_offset
    remaining = blockette_count
    while position and remaining > 0:
        if position in visited or position < FIXED_HEADER_SIZE or offset + position + 4 > len(buffer):
            raise MalformedHeaderError(f"invalid blockette offset {position}", offset)
        visited.add(position)
        blockette_type, next_position = _BLOCKETTE_HEAD[byte_order].unpack_from(buffer, offset + position)
        if blockette_type == 1000:
            if offset + position + _B1000[byte_order].size > len(buffer):
                raise MalformedHeaderError("blockette 1000 runs past end of buffer", offset)
            _, _, encoding, word_flag, exponent = _B1000[byte_order].unpack_from(buffer, offset + position)
            if not 7 <= exponent <= MAX_RECORD_EXPONENT:
                raise MalformedHeaderError(f"record length exponent {exponent} out of range", offset)
            record_length = 1 << exponent
            word_order = ">" if word_flag == 1 else "<"
        elif blockette_type == 1001:
            if offset + position + _B1001[byte_order].size > len(buffer):
                raise MalformedHeaderError("blockette 1001 runs past end of buffer", offset)
            _, _, _timing_quality, microseconds, _, _ = _B1001[byte_order].unpack_from(buffer, offset + position)
        position = next_position
        remaining -= 1

    if record_length is None or encoding is None:
        if fallback_record_length is None or fallback_encoding is None:
            raise MalformedHeaderError("record has no blockette 1000", offset)
        record_length = fallback_record_length
        encoding = fallback_encoding

    start_time = datetime(year, 1, 1, tzinfo=UTC) + timedelta(
        days=day - 1,
        hours=hour,
        minutes=minute,
        seconds=second,
        microseconds=fract * 100 + microseconds,
    )
    if time_correction and not activity_flags & _TIME_CORRECTION_APPLIED:
        start_time += timedelta(microseconds=time_correction * 100)

    try:
        sequence_number = int(raw_sequence.strip(b" \x00") or b"0")
    except ValueError as exc:  # embedded blanks such as b"00 001"
        raise MalformedHeaderError(f"invalid sequence number {raw_sequence!r}", offset) from exc

    return RecordHeader(
        sequence_number=sequence_number,
        quality=DataQuality(quality.decode("ascii")),
        network=_decode_code(network),
        station=_decode_code(station),
        location=_decode_code(location),
        channel=_decode_code(channel),
        start_time=start_time,
        sample_count=sample_count,
        sample_rate=sample_rate_from(rate_factor, rate_multiplier),
        data_offset=data_offset,
        record_length=record_length,
        encoding=encoding,
        byte_order=byte_order,
        word_order=word_order,
    )
