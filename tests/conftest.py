"""Pytest configuration and miniSEED fixtures for the seisview test suite."""

from __future__ import annotations

import io
import struct
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import pytest

from seisview.core.logging import configure_logging

HEADER_FORMAT = "6sc x5s2s3s2s HHBBBxH H hh BBBB i HH"
DATA_OFFSET = 64
DEFAULT_START = datetime(2024, 1, 1, tzinfo=UTC)

RecordFactory = Callable[..., bytes]


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--seisview-run-integration",
        action="store_true",
        default=False,
        help="Run seisview integration tests that require network access.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the integration marker."""

    config.addinivalue_line(
        "markers",
        "integration: marks seisview tests requiring network access",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--seisview-run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="integration tests require --seisview-run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def quiet_logging() -> None:
    configure_logging(level="DEBUG", console_stream=io.StringIO())


def _fits(values: Sequence[int], bits: int) -> bool:
    limit = 1 << (bits - 1)
    return all(-limit <= value < limit for value in values)


def _pack(values: Sequence[int], bits: int) -> int:
    word = 0
    for value in values:
        word = (word << bits) | (value & ((1 << bits) - 1))
    return word


def encode_steim(samples: Sequence[int], *, steim2: bool = False, order: str = ">") -> bytes:
    """Encode integer samples as Steim1/Steim2 frames (greedy packing)."""
    differences = [0] + [samples[i] - samples[i - 1] for i in range(1, len(samples))]
    packed: list[tuple[int, int]] = []
    i = 0
    while i < len(differences):
        rest = differences[i:]
        if len(rest) >= 4 and _fits(rest[:4], 8):
            packed.append((1, _pack(rest[:4], 8)))
            i += 4
        elif steim2 and len(rest) >= 3 and _fits(rest[:3], 10):
            packed.append((2, (0b11 << 30) | _pack(rest[:3], 10)))
            i += 3
        elif steim2:
            packed.append((2, (0b01 << 30) | _pack(rest[:1], 30)))
            i += 1
        elif len(rest) >= 2 and _fits(rest[:2], 16):
            packed.append((2, _pack(rest[:2], 16)))
            i += 2
        else:
            packed.append((3, rest[0] & 0xFFFFFFFF))
            i += 1

    frames: list[list[tuple[int, int]]] = []
    frame: list[tuple[int, int]] = [(0, samples[0] & 0xFFFFFFFF), (0, samples[-1] & 0xFFFFFFFF)]
    for item in packed:
        if len(frame) == 15:
            frames.append(frame)
            frame = []
        frame.append(item)
    frames.append(frame)

    output = bytearray()
    for words in frames:
        words = words + [(0, 0)] * (15 - len(words))
        control = 0
        for nibble, _ in words:
            control = (control << 2) | nibble
        output += struct.pack(order + "16I", control, *(word for _, word in words))
    return bytes(output)


def _rate_fields(sample_rate: float) -> tuple[int, int]:
    if sample_rate == 0:
        return 0, 1
    if sample_rate >= 1:
        return int(sample_rate), 1
    return -round(1 / sample_rate), 1


def build_record(
    samples: Sequence[float] = tuple(range(100)),
    *,
    network: str = "IU",
    station: str = "ANMO",
    location: str = "",
    channel: str = "BHZ",
    start: datetime = DEFAULT_START,
    sample_rate: float = 20.0,
    encoding: int = 3,
    record_length: int = 512,
    byte_order: str = ">",
    sequence: int = 1,
    sample_count: int | None = None,
    include_b1000: bool = True,
) -> bytes:
    """Build one miniSEED 2 record."""
    count = len(samples) if sample_count is None else sample_count
    day_of_year = start.timetuple().tm_yday
    factor, multiplier = _rate_fields(sample_rate)
    header = struct.pack(
        byte_order + HEADER_FORMAT,
        f"{sequence:06d}".encode(),
        b"D",
        station.ljust(5).encode(),
        location.ljust(2).encode(),
        channel.ljust(3).encode(),
        network.ljust(2).encode(),
        start.year,
        day_of_year,
        start.hour,
        start.minute,
        start.second,
        start.microsecond // 100,
        count,
        factor,
        multiplier,
        0,
        0,
        0,
        1 if include_b1000 else 0,
        0,
        DATA_OFFSET,
        48 if include_b1000 else 0,
    )
    exponent = record_length.bit_length() - 1
    if include_b1000:
        blockette = struct.pack(byte_order + "HHBBBx", 1000, 0, encoding, 1 if byte_order == ">" else 0, exponent)
    else:
        blockette = b"\x00" * 8
    header += blockette + b"\x00" * (DATA_OFFSET - 56)

    if encoding in (10, 11):
        payload = encode_steim([int(value) for value in samples], steim2=encoding == 11, order=byte_order)
    else:
        code = {1: "h", 3: "i", 4: "f", 5: "d"}[encoding]
        payload = struct.pack(f"{byte_order}{len(samples)}{code}", *samples)

    body = header + payload
    if len(body) > record_length:
        raise ValueError("samples do not fit the record")
    return body + b"\x00" * (record_length - len(body))


@pytest.fixture
def make_record() -> RecordFactory:
    return build_record


@pytest.fixture
def steim_encoder() -> Callable[..., bytes]:
    return encode_steim


@pytest.fixture
def ramp_record() -> bytes:
    """IU.ANMO..BHZ, 20 Hz, 100 samples ramping 0..99 from 2024-01-01T00:00:00Z."""
    return build_record(list(range(100)))
