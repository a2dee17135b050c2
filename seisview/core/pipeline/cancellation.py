"""Cooperative cancellation for pipeline runs."""

from __future__ import annotations

import asyncio
import threading

from seisview.core.exceptions import DecodeAbortedError


class CancellationToken:
    """Flag shared between the orchestrator and one run's worker thread.

    Stages poll :meth:`raise_if_cancelled` between coarse steps; nothing is
    interrupted mid-loop. An attached fetch task is cancelled immediately.
    """

    def __init__(self, run_id: int) -> None:
        self.run_id = run_id
        self._event = threading.Event()
        self._task: asyncio.Future[bytes] | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def attach(self, task: asyncio.Future[bytes]) -> None:
        """Register the in-flight fetch so :meth:`cancel` can stop it."""
        self._task = task

    def cancel(self) -> None:
        self._event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise DecodeAbortedError(self.run_id, stage)
