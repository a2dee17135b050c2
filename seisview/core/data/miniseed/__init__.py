"""miniSEED 2 decoding."""

from seisview.core.data.miniseed.decoder import decode_records
from seisview.core.data.miniseed.encodings import decode_samples
from seisview.core.data.miniseed.header import (
    FIXED_HEADER_SIZE,
    RecordHeader,
    parse_header,
    sample_rate_from,
)

__all__ = [
    "FIXED_HEADER_SIZE",
    "RecordHeader",
    "decode_records",
    "decode_samples",
    "parse_header",
    "sample_rate_from",
]
