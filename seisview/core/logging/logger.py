"""JSON-line logging with per-run context.

Every record carries a ``trace_id``; :func:`log_context` scopes one (the
orchestrator opens one per pipeline run) together with ``channel`` and any
other keys, which end up in the record's ``context`` object.
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Iterator
from uuid import uuid4

from loguru import logger

from seisview.core.config import LoggingConfig
from seisview.core.logging.config import LogConfig

_TOP_LEVEL_KEYS = ("channel", "error_code")

_trace_id: ContextVar[str | None] = ContextVar("seisview_trace_id", default=None)
_context: ContextVar[dict[str, Any]] = ContextVar("seisview_log_context", default={})


def current_trace_id() -> str:
    """Trace id of the active context, created on first use."""
    trace_id = _trace_id.get()
    if trace_id is None:
        trace_id = uuid4().hex
        _trace_id.set(trace_id)
    return trace_id


def _patch(record: dict[str, Any]) -> None:
    extra = record["extra"]
    for key, value in _context.get().items():
        extra.setdefault(key, value)
    extra.setdefault("trace_id", current_trace_id())


def _to_json(record: dict[str, Any]) -> str:
    extra = dict(record["extra"])
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "trace_id": extra.pop("trace_id", None),
    }
    for key in _TOP_LEVEL_KEYS:
        payload[key] = extra.pop(key, None)
    if extra:
        payload["context"] = extra
    if record["exception"] is not None:
        payload["exception"] = str(record["exception"])
    return json.dumps(payload, default=lambda value: value.isoformat() if isinstance(value, datetime) else str(value))


class _JsonLinesSink:
    """Write one JSON object per record to a text stream or append to a file."""

    def __init__(self, target: IO[str] | Path) -> None:
        self._target = target
        if isinstance(target, Path):
            target.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, message: Any) -> None:
        line = _to_json(message.record) + "\n"
        if isinstance(self._target, Path):
            with self._target.open("a", encoding="utf-8") as file:
                file.write(line)
        else:
            self._target.write(line)
            self._target.flush()


def configure_logging(level: str = "INFO", **options: Any) -> LogConfig:
    """Replace all sinks according to ``level`` and :class:`LogConfig` options.

    Returns:
        LogConfig: the validated configuration that was applied
    """
    config = LogConfig(level=level, **options)
    handlers: list[dict[str, Any]] = []
    if config.console:
        # stdout is reserved for command output
        handlers.append({"sink": _JsonLinesSink(config.console_stream or sys.stderr), "level": config.level})
    if config.file_path:
        handlers.append({"sink": _JsonLinesSink(Path(config.file_path)), "level": config.level})
    logger.configure(handlers=handlers, patcher=_patch)
    return config


def configure_from_settings(settings: LoggingConfig, level: str | None = None, **options: Any) -> LogConfig:
    """Apply the ``[logging]`` configuration section; ``level`` overrides its level."""
    return configure_logging(level or settings.level, file_path=settings.file, **options)


@contextmanager
def log_context(*, trace_id: str | None = None, **values: Any) -> Iterator[str]:
    """Attach ``values`` and a trace id to every record logged inside the block."""
    context_token = _context.set({**_context.get(), **values})
    trace_token = _trace_id.set(trace_id or uuid4().hex)
    try:
        yield _trace_id.get()
    finally:
        _trace_id.reset(trace_token)
        _context.reset(context_token)


configure_logging()


__all__ = [
    "configure_from_settings",
    "configure_logging",
    "current_trace_id",
    "log_context",
    "logger",
]
