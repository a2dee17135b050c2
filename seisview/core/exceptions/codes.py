"""Standardised error codes."""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes carried by every :class:`SeisviewError`."""

    GENERAL_ERROR = "GENERAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Per-record decode problems, recovered by skipping the record
    MALFORMED_HEADER = "MALFORMED_HEADER"
    UNSUPPORTED_ENCODING = "UNSUPPORTED_ENCODING"
    TRUNCATED_PAYLOAD = "TRUNCATED_PAYLOAD"

    # Pipeline outcomes
    NO_DATA = "NO_DATA"
    DECODE_FAILED = "DECODE_FAILED"
    DECODE_ABORTED = "DECODE_ABORTED"
    FETCH_FAILED = "FETCH_FAILED"
