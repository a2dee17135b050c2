"""Tests for the seisview exception hierarchy."""

from __future__ import annotations

import pytest

from seisview.core.exceptions import (
    ConfigurationError,
    DecodeAbortedError,
    DecodeFailedError,
    ErrorCode,
    FetchFailedError,
    MalformedHeaderError,
    NoDataError,
    RecordDecodeError,
    SeisviewError,
    TruncatedPayloadError,
    UnsupportedEncodingError,
)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (MalformedHeaderError("bad", 128), ErrorCode.MALFORMED_HEADER),
        (UnsupportedEncodingError("bad", 0, 2), ErrorCode.UNSUPPORTED_ENCODING),
        (TruncatedPayloadError("short", 512), ErrorCode.TRUNCATED_PAYLOAD),
    ],
)
def test_record_errors_carry_offset(error: RecordDecodeError, code: ErrorCode) -> None:
    """Per-record errors expose their code and byte offset."""

    assert isinstance(error, SeisviewError)
    assert error.error_code == code.value
    assert error.details["offset"] == error.offset


def test_unsupported_encoding_details() -> None:
    error = UnsupportedEncodingError("encoding INT24 is not supported", 64, 2)

    assert error.encoding == 2
    assert error.to_payload() == {
        "code": "UNSUPPORTED_ENCODING",
        "message": "encoding INT24 is not supported",
        "details": {"offset": 64, "encoding": 2},
    }


def test_no_data_error() -> None:
    error = NoDataError("no data for IU.ANMO..BHZ", channel="IU.ANMO..BHZ")

    assert error.error_code == ErrorCode.NO_DATA.value
    assert error.details == {"channel": "IU.ANMO..BHZ"}


def test_decode_failed_error() -> None:
    error = DecodeFailedError("nothing decoded", notice_count=4)

    assert error.notice_count == 4
    assert error.error_code == "DECODE_FAILED"


def test_decode_aborted_error() -> None:
    error = DecodeAbortedError(run_id=7, stage="decimation")

    assert str(error) == "run 7 cancelled before decimation"
    assert error.details == {"run_id": 7, "stage": "decimation"}


def test_fetch_failed_error() -> None:
    error = FetchFailedError("status 503", url="https://service.iris.edu", status_code=503)

    assert error.details == {"url": "https://service.iris.edu", "status_code": 503}
    assert FetchFailedError("timeout").details == {}


def test_configuration_error_field() -> None:
    error = ConfigurationError("bins must be positive", field="bins")

    assert error.field == "bins"
    assert error.error_code == ErrorCode.CONFIGURATION_ERROR.value


def test_payload_details_are_copied() -> None:
    error = SeisviewError("boom", details={"key": "value"})

    payload = error.to_payload()
    payload["details"]["key"] = "changed"

    assert error.details["key"] == "value"
    assert error.error_code == ErrorCode.GENERAL_ERROR.value
