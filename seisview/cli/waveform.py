"""Waveform commands: inspect, render and fetch."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import NoReturn, Sequence, TextIO

import typer

from seisview.core.client import DataselectClient
from seisview.core.config import ConfigManager, SeisviewConfig
from seisview.core.data.miniseed import decode_records
from seisview.core.exceptions import DecodeFailedError, FetchFailedError, SeisviewError
from seisview.core.models.channel import ChannelKey, FDSNSource, TimeWindow, WaveformRequest
from seisview.core.pipeline import PipelineState, WaveformPipeline, WaveformResult, process_buffer
from seisview.core.services import assemble_segments

from .constants import DECODE_EXIT_CODE, FETCH_EXIT_CODE, VALIDATION_EXIT_CODE
from .formatters import OutputFormatter
from .utils import emit_error, format_time_ms, parse_time, prepare_output

POINT_COLUMNS = ["time", "time_ms", "value"]
SUMMARY_COLUMNS = ["channel", "samples", "segments", "points", "y_min", "y_max", "offset", "skipped_records"]
SEGMENT_COLUMNS = ["channel", "start", "end", "sample_rate", "samples"]
NOTICE_COLUMNS = ["index", "offset", "code", "message"]


def register(app: typer.Typer) -> None:
    """Register waveform commands on the provided application."""

    app.command("inspect")(inspect_command)
    app.command("render")(render_command)
    app.command("fetch")(fetch_command)


def get_config() -> SeisviewConfig:
    """Factory hook for the active configuration."""

    return ConfigManager().get_config()


def get_dataselect_client(config: SeisviewConfig, source: FDSNSource | None) -> DataselectClient:
    """Factory hook for the dataselect client."""

    return DataselectClient(config.fetch, source=source)


def _read_buffer(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        emit_error(f"Unable to read '{path}': {exc}", "INPUT_READ_ERROR")
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc


def _parse_channel(value: str | None) -> ChannelKey | None:
    if value is None:
        return None
    try:
        return ChannelKey.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--channel") from exc


def _parse_window(start: str | None, end: str | None) -> TimeWindow | None:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise typer.BadParameter("--start and --end must be given together", param_hint="--start")
    try:
        return TimeWindow(start=parse_time(start, "--start"), end=parse_time(end, "--end"))
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--end") from exc


def _summary_row(result: WaveformResult) -> dict[str, object]:
    return {
        "channel": result.channel_id or None,
        "samples": result.sample_count,
        "segments": result.segment_count,
        "points": len(result.series),
        "y_min": result.series.y_min,
        "y_max": result.series.y_max,
        "offset": result.series.offset,
        "skipped_records": len(result.notices),
    }


def _point_rows(result: WaveformResult) -> list[dict[str, object]]:
    return [
        {"time": format_time_ms(time_ms), "time_ms": time_ms, "value": value}
        for time_ms, value in result.series.points
    ]


def _render_result(
    formatter: OutputFormatter,
    stream: TextIO,
    result: WaveformResult,
    summary_only: bool,
) -> None:
    formatter.render([_summary_row(result)], stream=stream, columns=SUMMARY_COLUMNS, title="Summary")
    if not summary_only:
        formatter.render(_point_rows(result), stream=stream, columns=POINT_COLUMNS, title="Points")


def _exit_for(error: SeisviewError) -> NoReturn:
    emit_error(error.message, error.error_code, details=error.details)
    if isinstance(error, FetchFailedError):
        raise typer.Exit(code=FETCH_EXIT_CODE) from error
    if isinstance(error, DecodeFailedError):
        raise typer.Exit(code=DECODE_EXIT_CODE) from error
    raise typer.Exit(code=VALIDATION_EXIT_CODE) from error


def inspect_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="miniSEED file to inspect."),
) -> None:
    """List the contiguous segments and skipped records in a miniSEED file."""

    formatter, stream, stack = prepare_output(ctx)
    try:
        config = get_config()
        decoded = decode_records(_read_buffer(path), config.decoder)
        segments = assemble_segments(decoded.records, config.pipeline.gap_tolerance)

        segment_rows: list[dict[str, object]] = []
        for channel_id, items in segments.items():
            for segment in items:
                segment_rows.append(
                    {
                        "channel": channel_id,
                        "start": format_time_ms(segment.start_ms),
                        "end": format_time_ms(segment.end_ms),
                        "sample_rate": segment.sample_rate,
                        "samples": len(segment),
                    }
                )
        notice_rows: Sequence[dict[str, object]] = [
            {"index": notice.index, "offset": notice.offset, "code": notice.code, "message": notice.message}
            for notice in decoded.notices
        ]
        formatter.render(segment_rows, stream=stream, columns=SEGMENT_COLUMNS, title="Segments")
        if notice_rows:
            formatter.render(notice_rows, stream=stream, columns=NOTICE_COLUMNS, title="Skipped records")
    finally:
        stack.close()


def render_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="miniSEED file to render."),
    channel: str | None = typer.Option(None, "--channel", "-c", help="NET.STA.LOC.CHA; defaults to the first channel."),
    bins: int | None = typer.Option(None, "--bins", min=1, help="Decimation bin count."),
    start: str | None = typer.Option(None, "--start", help="Trim start (ISO-8601)."),
    end: str | None = typer.Option(None, "--end", help="Trim end (ISO-8601)."),
    summary_only: bool = typer.Option(False, "--summary-only", help="Print only the summary row."),
) -> None:
    """Decode, decimate and scale a local miniSEED file."""

    formatter, stream, stack = prepare_output(ctx)
    try:
        channel_key = _parse_channel(channel)
        window = _parse_window(start, end)
        buffer = _read_buffer(path)
        try:
            result = process_buffer(buffer, channel_key, window, config=get_config(), bins=bins)
        except SeisviewError as error:
            _exit_for(error)
        _render_result(formatter, stream, result, summary_only)
    finally:
        stack.close()


def fetch_command(
    ctx: typer.Context,
    network: str = typer.Option(..., "--net", help="Network code."),
    station: str = typer.Option(..., "--sta", help="Station code."),
    location: str = typer.Option("", "--loc", help="Location code; empty or -- for none."),
    channel: str = typer.Option(..., "--cha", help="Channel code."),
    start: str = typer.Option(..., "--start", help="Window start (ISO-8601)."),
    end: str = typer.Option(..., "--end", help="Window end (ISO-8601)."),
    source: str | None = typer.Option(None, "--source", help="Preset data centre: iris or orfeus."),
    base_url: str | None = typer.Option(None, "--base-url", help="Custom FDSN base URL."),
    bins: int | None = typer.Option(None, "--bins", min=1, help="Decimation bin count."),
    summary_only: bool = typer.Option(False, "--summary-only", help="Print only the summary row."),
) -> None:
    """Fetch a channel from an FDSN dataselect service and render it."""

    formatter, stream, stack = prepare_output(ctx)
    try:
        try:
            request = WaveformRequest(
                channel=ChannelKey(network=network, station=station, location=location, channel=channel),
                window=TimeWindow(start=parse_time(start, "--start"), end=parse_time(end, "--end")),
                bins=bins,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc

        preset = _parse_source(source)
        config = get_config()
        if base_url:
            config.fetch.base_url = base_url
        state = asyncio.run(_fetch(request, config, preset))

        result = state.result if state is not None else None
        if result is None:
            error = state.error if state is not None else None
            if error is None:
                emit_error("Fetch was cancelled.", "DECODE_ABORTED")
                raise typer.Exit(code=FETCH_EXIT_CODE)
            _exit_for(error)
        _render_result(formatter, stream, result, summary_only)
    finally:
        stack.close()


def _parse_source(value: str | None) -> FDSNSource | None:
    if value is None:
        return None
    try:
        return FDSNSource[value.strip().upper()]
    except KeyError as exc:
        allowed = ", ".join(member.name.lower() for member in FDSNSource)
        raise typer.BadParameter(f"Unsupported source '{value}'. Allowed values: {allowed}", param_hint="--source") from exc


async def _fetch(request: WaveformRequest, config: SeisviewConfig, source: FDSNSource | None) -> PipelineState | None:
    async with get_dataselect_client(config, source) as client:
        pipeline = WaveformPipeline(client, config)
        return await pipeline.load(request)
