"""Main entry point for the seisview command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from seisview.core.exceptions import ConfigurationError
from seisview.core.logging import configure_from_settings

from . import waveform
from .constants import VALIDATION_EXIT_CODE
from .formatters import create_formatter
from .utils import emit_error


def create_app() -> typer.Typer:
    """Create a Typer application instance for seisview."""

    app = typer.Typer(add_completion=False, help="seisview command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Logging level; overrides the configured [logging] level.",
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "no_color": no_color,
            }
        )
        try:
            settings = waveform.get_config().logging
            configure_from_settings(settings, level=log_level)
        except (ConfigurationError, ValueError) as exc:
            emit_error(f"Invalid logging configuration: {exc}", "CONFIGURATION_ERROR")
            raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc

    waveform.register(app)
    return app


app = create_app()
