from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from seisview.cli import waveform as waveform_module
from seisview.cli.constants import DECODE_EXIT_CODE, FETCH_EXIT_CODE, VALIDATION_EXIT_CODE
from seisview.cli.main import create_app
from seisview.core.config import ConfigManager, SeisviewConfig
from seisview.core.exceptions import FetchFailedError
from seisview.core.models.channel import FDSNSource, WaveformRequest


class StubDataselectClient:
    def __init__(self, body: bytes = b"", error: Exception | None = None) -> None:
        self.body = body
        self.error = error
        self.requests: list[WaveformRequest] = []
        self.closed = False

    async def __aenter__(self) -> StubDataselectClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.closed = True

    async def __call__(self, request: WaveformRequest) -> bytes:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.body


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config(monkeypatch: pytest.MonkeyPatch) -> SeisviewConfig:
    config = SeisviewConfig()
    monkeypatch.setattr(waveform_module, "get_config", lambda: config)
    return config


def _stub_client(monkeypatch: pytest.MonkeyPatch, client: StubDataselectClient) -> list[object]:
    calls: list[object] = []

    def factory(config: SeisviewConfig, source: FDSNSource | None) -> StubDataselectClient:
        calls.append((config, source))
        return client

    monkeypatch.setattr(waveform_module, "get_dataselect_client", factory)
    return calls


def _rows(output: str, key: str) -> list[dict[str, object]]:
    rows = [json.loads(line) for line in output.splitlines() if line.startswith("{")]
    return [row for row in rows if key in row]


def _write(tmp_path: Path, data: bytes) -> Path:
    path = tmp_path / "anmo.mseed"
    path.write_bytes(data)
    return path


def test_render_summary_jsonl(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes) -> None:
    path = _write(tmp_path, ramp_record)

    result = runner.invoke(create_app(), ["--format", "jsonl", "render", str(path), "--summary-only"])

    assert result.exit_code == 0, result.output
    [summary] = _rows(result.stdout, "skipped_records")
    assert summary["channel"] == "IU.ANMO..BHZ"
    assert summary["samples"] == 100
    assert summary["segments"] == 1
    assert summary["points"] == 100
    assert summary["y_min"] == pytest.approx(-58.3)
    assert summary["y_max"] == pytest.approx(59.3)
    assert _rows(result.stdout, "time_ms") == []


def test_render_points_jsonl(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes) -> None:
    path = _write(tmp_path, ramp_record)

    result = runner.invoke(create_app(), ["-f", "jsonl", "render", str(path), "--bins", "10"])

    assert result.exit_code == 0, result.output
    points = _rows(result.stdout, "time_ms")
    assert 0 < len(points) <= 20
    assert points[0]["time"] == "2024-01-01T00:00:00.000+00:00"


def test_render_table(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes) -> None:
    path = _write(tmp_path, ramp_record)

    result = runner.invoke(create_app(), ["--no-color", "render", str(path), "--summary-only"])

    assert result.exit_code == 0, result.output
    assert "Summary" in result.stdout


def test_render_to_output_file(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes) -> None:
    path = _write(tmp_path, ramp_record)
    target = tmp_path / "summary.jsonl"

    result = runner.invoke(create_app(), ["-f", "jsonl", "-o", str(target), "render", str(path), "--summary-only"])

    assert result.exit_code == 0, result.output
    assert _rows(target.read_text(), "skipped_records")[0]["samples"] == 100


def test_render_window_and_channel(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, make_record) -> None:
    path = _write(tmp_path, make_record(list(range(100)), channel="BHZ") + make_record([1, 2], channel="BHN"))

    result = runner.invoke(
        create_app(),
        [
            "-f",
            "jsonl",
            "render",
            str(path),
            "-c",
            "IU.ANMO..BHZ",
            "--start",
            "2024-01-01T00:00:01",
            "--end",
            "2024-01-01T00:00:02",
            "--summary-only",
        ],
    )

    assert result.exit_code == 0, result.output
    assert _rows(result.stdout, "skipped_records")[0]["samples"] == 21


def test_render_missing_channel_is_empty(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes) -> None:
    path = _write(tmp_path, ramp_record)

    result = runner.invoke(create_app(), ["-f", "jsonl", "render", str(path), "-c", "XX.NONE..BHZ", "--summary-only"])

    assert result.exit_code == 0, result.output
    summary = _rows(result.stdout, "skipped_records")[0]
    assert summary["points"] == 0
    assert summary["channel"] == "XX.NONE..BHZ"


def test_render_undecodable_file(runner: CliRunner, config: SeisviewConfig, tmp_path: Path) -> None:
    path = _write(tmp_path, b"\xab" * 512)

    result = runner.invoke(create_app(), ["render", str(path)])

    assert result.exit_code == DECODE_EXIT_CODE
    assert "DECODE_FAILED" in result.output


@pytest.mark.parametrize(
    "args",
    [
        ["-c", "not-a-channel"],
        ["--start", "2024-01-01T00:00:00"],
        ["--start", "yesterday", "--end", "2024-01-01T00:00:00"],
        ["--start", "2024-01-02T00:00:00", "--end", "2024-01-01T00:00:00"],
    ],
)
def test_render_rejects_bad_options(
    runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes, args: list[str]
) -> None:
    path = _write(tmp_path, ramp_record)

    result = runner.invoke(create_app(), ["render", str(path), *args])

    assert result.exit_code == VALIDATION_EXIT_CODE


def test_render_missing_file(runner: CliRunner, config: SeisviewConfig, tmp_path: Path) -> None:
    result = runner.invoke(create_app(), ["render", str(tmp_path / "missing.mseed")])

    assert result.exit_code == VALIDATION_EXIT_CODE
    assert "INPUT_READ_ERROR" in result.output


def test_unknown_format(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes) -> None:
    result = runner.invoke(create_app(), ["--format", "xml", "render", str(_write(tmp_path, ramp_record))])

    assert result.exit_code == VALIDATION_EXIT_CODE


def test_inspect_lists_segments_and_notices(
    runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes
) -> None:
    path = _write(tmp_path, ramp_record + ramp_record[:100])

    result = runner.invoke(create_app(), ["-f", "jsonl", "inspect", str(path)])

    assert result.exit_code == 0, result.output
    [segment] = _rows(result.stdout, "sample_rate")
    assert segment == {
        "channel": "IU.ANMO..BHZ",
        "start": "2024-01-01T00:00:00.000+00:00",
        "end": "2024-01-01T00:00:05.000+00:00",
        "sample_rate": 20.0,
        "samples": 100,
    }
    [notice] = [row for row in _rows(result.stdout, "code") if "index" in row]
    assert notice["code"] == "TRUNCATED_PAYLOAD"
    assert notice["offset"] == 512


def test_fetch_renders_response(
    runner: CliRunner, config: SeisviewConfig, monkeypatch: pytest.MonkeyPatch, ramp_record: bytes
) -> None:
    client = StubDataselectClient(ramp_record)
    calls = _stub_client(monkeypatch, client)

    result = runner.invoke(
        create_app(),
        [
            "-f",
            "jsonl",
            "fetch",
            "--net",
            "iu",
            "--sta",
            "anmo",
            "--loc=--",
            "--cha",
            "bhz",
            "--start",
            "2024-01-01T00:00:00",
            "--end",
            "2024-01-01T00:10:00",
            "--source",
            "orfeus",
            "--summary-only",
        ],
    )

    assert result.exit_code == 0, result.output
    assert calls == [(config, FDSNSource.ORFEUS)]
    assert client.closed
    [request] = client.requests
    assert request.channel_id == "IU.ANMO..BHZ"
    assert _rows(result.stdout, "skipped_records")[0]["samples"] == 100


def test_fetch_base_url_override(
    runner: CliRunner, config: SeisviewConfig, monkeypatch: pytest.MonkeyPatch, ramp_record: bytes
) -> None:
    _stub_client(monkeypatch, StubDataselectClient(ramp_record))

    result = runner.invoke(
        create_app(),
        [
            "fetch",
            "--net",
            "IU",
            "--sta",
            "ANMO",
            "--cha",
            "BHZ",
            "--start",
            "2024-01-01T00:00:00",
            "--end",
            "2024-01-01T00:10:00",
            "--base-url",
            "https://example.org",
            "--summary-only",
        ],
    )

    assert result.exit_code == 0, result.output
    assert config.fetch.base_url == "https://example.org"


def test_fetch_failure_exit_code(runner: CliRunner, config: SeisviewConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    error = FetchFailedError("GET https://service.iris.edu: status 503", status_code=503)
    _stub_client(monkeypatch, StubDataselectClient(error=error))

    result = runner.invoke(
        create_app(),
        [
            "fetch",
            "--net",
            "IU",
            "--sta",
            "ANMO",
            "--cha",
            "BHZ",
            "--start",
            "2024-01-01T00:00:00",
            "--end",
            "2024-01-01T00:10:00",
        ],
    )

    assert result.exit_code == FETCH_EXIT_CODE
    assert "FETCH_FAILED" in result.output


def test_fetch_rejects_unknown_source(runner: CliRunner, config: SeisviewConfig) -> None:
    result = runner.invoke(
        create_app(),
        [
            "fetch",
            "--net",
            "IU",
            "--sta",
            "ANMO",
            "--cha",
            "BHZ",
            "--start",
            "2024-01-01T00:00:00",
            "--end",
            "2024-01-01T00:10:00",
            "--source",
            "geofon",
        ],
    )

    assert result.exit_code == VALIDATION_EXIT_CODE


FETCH_ARGS = [
    "fetch",
    "--net",
    "IU",
    "--sta",
    "ANMO",
    "--cha",
    "BHZ",
    "--start",
    "2024-01-01T00:00:00",
    "--end",
    "2024-01-01T00:10:00",
]


def test_fetch_without_final_state_reports_abort(
    runner: CliRunner, config: SeisviewConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def discarded(request: WaveformRequest, config: SeisviewConfig, source: FDSNSource | None) -> None:
        return None

    monkeypatch.setattr(waveform_module, "_fetch", discarded)

    result = runner.invoke(create_app(), FETCH_ARGS)

    assert result.exit_code == FETCH_EXIT_CODE
    assert "DECODE_ABORTED" in result.output


def test_inspect_closes_output_when_input_is_missing(
    runner: CliRunner, config: SeisviewConfig, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    closed: list[bool] = []
    original = waveform_module.prepare_output

    def tracking_prepare_output(ctx):
        formatter, stream, stack = original(ctx)
        stack.callback(closed.append, True)
        return formatter, stream, stack

    monkeypatch.setattr(waveform_module, "prepare_output", tracking_prepare_output)
    target = tmp_path / "segments.jsonl"

    result = runner.invoke(
        create_app(), ["-f", "jsonl", "-o", str(target), "inspect", str(tmp_path / "missing.mseed")]
    )

    assert result.exit_code == VALIDATION_EXIT_CODE
    assert "INPUT_READ_ERROR" in result.output
    assert closed == [True]


def test_configured_log_file_receives_records(
    runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes
) -> None:
    log_file = tmp_path / "logs" / "seisview.log"
    config.logging.level = "DEBUG"
    config.logging.file = str(log_file)
    path = _write(tmp_path, ramp_record)

    result = runner.invoke(create_app(), ["-f", "jsonl", "render", str(path), "--summary-only"])

    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    messages = [record["message"] for record in records]
    assert "decode_records completed" in messages
    assert "process_buffer completed" in messages
    assert all(record["level"] == "DEBUG" for record in records if record["message"].endswith("completed"))


def test_log_level_option_overrides_configured_level(
    runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes
) -> None:
    log_file = tmp_path / "seisview.log"
    config.logging.level = "DEBUG"
    config.logging.file = str(log_file)
    path = _write(tmp_path, ramp_record)

    result = runner.invoke(create_app(), ["--log-level", "error", "-f", "jsonl", "render", str(path)])

    assert result.exit_code == 0, result.output
    assert not log_file.exists()


def test_invalid_configured_log_level(runner: CliRunner, config: SeisviewConfig, tmp_path: Path, ramp_record: bytes) -> None:
    config.logging.level = "chatty"

    result = runner.invoke(create_app(), ["render", str(_write(tmp_path, ramp_record))])

    assert result.exit_code == VALIDATION_EXIT_CODE
    assert "CONFIGURATION_ERROR" in result.output


def test_log_file_from_environment(
    runner: CliRunner, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, ramp_record: bytes
) -> None:
    log_file = tmp_path / "env.log"
    monkeypatch.setenv("SEISVIEW_LOGGING_LEVEL", "DEBUG")
    monkeypatch.setenv("SEISVIEW_LOGGING_FILE", str(log_file))
    monkeypatch.setattr(waveform_module, "get_config", lambda: ConfigManager(tmp_path / "config.toml").get_config())

    result = runner.invoke(create_app(), ["-f", "jsonl", "inspect", str(_write(tmp_path, ramp_record))])

    assert result.exit_code == 0, result.output
    messages = [json.loads(line)["message"] for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert "decode_records completed" in messages
