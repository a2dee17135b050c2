"""Buffer-level record decoder.

A corrupt record never aborts the run: it becomes a :class:`DecodeNotice`
and decoding resumes at the next record.
"""

from __future__ import annotations

from loguru import logger

from seisview.core.config import DecoderConfig
from seisview.core.data.miniseed.encodings import decode_samples
from seisview.core.data.miniseed.header import (
    FIXED_HEADER_SIZE,
    MIN_RECORD_LENGTH,
    RecordHeader,
    looks_like_header,
    parse_header,
)
from seisview.core.exceptions import (
    MalformedHeaderError,
    RecordDecodeError,
    TruncatedPayloadError,
)
from seisview.core.logging import PerformanceLogger
from seisview.core.models.waveform import DecodeNotice, DecodeResult, Encoding, RawRecord


def _next_candidate(buffer: memoryview, start: int) -> int:
    """Offset of the next plausible header on a record-length boundary, or end of buffer."""
    position = (start // MIN_RECORD_LENGTH + 1) * MIN_RECORD_LENGTH
    while position + FIXED_HEADER_SIZE <= len(buffer):
        if looks_like_header(buffer, position):
            return position
        position += MIN_RECORD_LENGTH
    return len(buffer)


def _build_record(header: RecordHeader, record: memoryview, offset: int) -> RawRecord:
    if not FIXED_HEADER_SIZE <= header.data_offset <= header.record_length:
        raise MalformedHeaderError(
            f"data offset {header.data_offset} outside record of {header.record_length} bytes",
            offset,
        )
    payload = bytes(record[header.data_offset :])
    samples = decode_samples(
        payload,
        header.encoding,
        header.sample_count,
        header.word_order,
        offset=offset,
    )
    return RawRecord(
        channel_id=header.channel_id,
        start_time=header.start_time,
        sample_rate=header.sample_rate,
        sample_count=header.sample_count,
        encoding=Encoding(header.encoding),
        payload=payload,
        samples=samples,
        sequence_number=header.sequence_number,
        quality=header.quality,
        offset=offset,
        record_length=header.record_length,
    )


def _notice(index: int, error: RecordDecodeError) -> DecodeNotice:
    logger.warning(
        "Skipping record {index} at offset {offset}: {reason}",
        index=index,
        offset=error.offset,
        reason=error.message,
        error_code=error.error_code,
    )
    return DecodeNotice(index=index, offset=error.offset, code=error.error_code, message=error.message)


@PerformanceLogger("decode_records")
def decode_records(buffer: bytes | bytearray | memoryview, config: DecoderConfig | None = None) -> DecodeResult:
    """Decode every record in ``buffer``.

    Args:
        buffer: concatenated miniSEED 2 records
        config: fallbacks for records without blockette 1000

    Returns:
        DecodeResult: usable records in buffer order plus notices for skipped ones
    """
    config = config or DecoderConfig()
    view = memoryview(buffer).cast("B")
    records: list[RawRecord] = []
    notices: list[DecodeNotice] = []

    offset = 0
    index = 0
    while offset < len(view):
        if offset + FIXED_HEADER_SIZE > len(view):
            trailing = view[offset:]
            if any(trailing):
                notices.append(
                    _notice(
                        index,
                        TruncatedPayloadError(f"{len(trailing)} trailing bytes are too short for a record", offset),
                    )
                )
            break

        try:
            header = parse_header(
                view,
                offset,
                fallback_record_length=config.fallback_record_length,
                fallback_encoding=config.fallback_encoding,
            )
        except MalformedHeaderError as error:
            notices.append(_notice(index, error))
            index += 1
            offset = _next_candidate(view, offset)
            continue

        end = offset + header.record_length
        try:
            if end > len(view):
                raise TruncatedPayloadError(
                    f"record declares {header.record_length} bytes, {len(view) - offset} remain",
                    offset,
                )
            if header.sample_count == 0 or header.sample_rate <= 0:
                logger.debug(
                    "Ignoring record {index} without samples for {channel}",
                    index=index,
                    channel=header.channel_id,
                )
            else:
                records.append(_build_record(header, view[offset:end], offset))
        except RecordDecodeError as error:
            notices.append(_notice(index, error))

        index += 1
        offset = end

    logger.debug(
        "Decoded {count} records with {skipped} skipped from {size} bytes",
        count=len(records),
        skipped=len(notices),
        size=len(view),
    )
    return DecodeResult(records=tuple(records), notices=tuple(notices))
