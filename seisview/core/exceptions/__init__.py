"""Exception handling module."""

from seisview.core.exceptions.base import (
    ConfigurationError,
    DecodeAbortedError,
    DecodeFailedError,
    FetchFailedError,
    MalformedHeaderError,
    NoDataError,
    RecordDecodeError,
    SeisviewError,
    TruncatedPayloadError,
    UnsupportedEncodingError,
)
from seisview.core.exceptions.codes import ErrorCode

__all__ = [
    "SeisviewError",
    "ConfigurationError",
    "RecordDecodeError",
    "MalformedHeaderError",
    "UnsupportedEncodingError",
    "TruncatedPayloadError",
    "NoDataError",
    "DecodeFailedError",
    "DecodeAbortedError",
    "FetchFailedError",
    "ErrorCode",
]
