"""seisview core exception classes."""

from __future__ import annotations

from typing import Any

from seisview.core.exceptions.codes import ErrorCode


class SeisviewError(Exception):
    """Base exception for seisview."""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GENERAL_ERROR.value,
        details: dict[str, Any] | None = None,
    ):
        """Initialise the exception.

        Args:
            message: human readable description
            error_code: one of :class:`ErrorCode` values
            details: extra structured context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Return a serialisable payload representing the error."""

        return {
            "code": self.error_code,
            "message": self.message,
            "details": dict(self.details),
        }


class ConfigurationError(SeisviewError):
    """Invalid configuration value."""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        super_details = details or {}
        if field:
            super_details["field"] = field
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR.value, super_details)
        self.field = field


class RecordDecodeError(SeisviewError):
    """A single record could not be decoded.

    These never abort a decode run; the decoder turns them into notices and
    moves on to the next record.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        offset: int,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["offset"] = offset
        super().__init__(message, error_code, super_details)
        self.offset = offset


class MalformedHeaderError(RecordDecodeError):
    """Unexpected header content or length."""

    def __init__(self, message: str, offset: int, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.MALFORMED_HEADER.value, offset, details)


class UnsupportedEncodingError(RecordDecodeError):
    """Encoding tag is not implemented."""

    def __init__(self, message: str, offset: int, encoding: int, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["encoding"] = encoding
        super().__init__(message, ErrorCode.UNSUPPORTED_ENCODING.value, offset, super_details)
        self.encoding = encoding


class TruncatedPayloadError(RecordDecodeError):
    """Declared content exceeds the bytes that are actually present."""

    def __init__(self, message: str, offset: int, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.TRUNCATED_PAYLOAD.value, offset, details)


class NoDataError(SeisviewError):
    """No usable samples for the requested channel."""

    def __init__(self, message: str, channel: str | None = None, details: dict[str, Any] | None = None):
        super_details = details or {}
        if channel:
            super_details["channel"] = channel
        super().__init__(message, ErrorCode.NO_DATA.value, super_details)
        self.channel = channel


class DecodeFailedError(SeisviewError):
    """Every record in a non-empty buffer was unusable."""

    def __init__(self, message: str, notice_count: int, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["notice_count"] = notice_count
        super().__init__(message, ErrorCode.DECODE_FAILED.value, super_details)
        self.notice_count = notice_count


class DecodeAbortedError(SeisviewError):
    """The run was superseded or aborted while decoding."""

    def __init__(self, run_id: int, stage: str):
        super().__init__(
            f"run {run_id} cancelled before {stage}",
            ErrorCode.DECODE_ABORTED.value,
            {"run_id": run_id, "stage": stage},
        )
        self.run_id = run_id
        self.stage = stage


class FetchFailedError(SeisviewError):
    """The byte-buffer collaborator reported a failure."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if url:
            super_details["url"] = url
        if status_code is not None:
            super_details["status_code"] = status_code
        super().__init__(message, ErrorCode.FETCH_FAILED.value, super_details)
        self.url = url
        self.status_code = status_code
