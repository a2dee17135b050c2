"""Logging options accepted by :func:`configure_logging`."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class LogConfig(BaseModel):
    """Where JSON log lines go and at which level.

    ``console_stream`` defaults to stderr; ``file_path`` adds a second sink
    appending to that file.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    level: str = "INFO"
    console: bool = True
    console_stream: Any = None
    file_path: str | None = None

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}; expected one of {', '.join(LOG_LEVELS)}")
        return level


__all__ = ["LOG_LEVELS", "LogConfig"]
