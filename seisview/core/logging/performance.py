"""Stage timing decorator."""

import functools
import inspect
import time
from collections.abc import Callable
from typing import Any

from loguru import logger


class PerformanceLogger:
    """Log the duration of a sync or async callable."""

    def __init__(self, operation: str):
        self.operation = operation

    def _log(self, start_time: float, error: Exception | None = None) -> None:
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        if error is None:
            logger.debug(
                "{operation} completed",
                operation=self.operation,
                duration_ms=duration_ms,
                status="success",
            )
        else:
            logger.debug(
                "{operation} failed",
                operation=self.operation,
                duration_ms=duration_ms,
                status="error",
                error=str(error),
            )

    def __call__(self, func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                self._log(start_time, e)
                raise
            self._log(start_time)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                self._log(start_time, e)
                raise
            self._log(start_time)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper
