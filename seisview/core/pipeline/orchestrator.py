"""Async orchestrator owning fetch, decode and supersession for one view."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from concurrent.futures import Executor

from loguru import logger

from seisview.core.config import SeisviewConfig
from seisview.core.exceptions import (
    DecodeAbortedError,
    DecodeFailedError,
    FetchFailedError,
)
from seisview.core.logging import log_context
from seisview.core.models.channel import WaveformRequest
from seisview.core.pipeline.cancellation import CancellationToken
from seisview.core.pipeline.processing import process_buffer
from seisview.core.pipeline.state import PipelineState, PipelineStatus, WaveformResult

BufferFetcher = Callable[[WaveformRequest], Awaitable[bytes]]
StateListener = Callable[[PipelineState], None]


class WaveformPipeline:
    """Runs at most one fetch/decode at a time for a single visualisation.

    A new :meth:`load` supersedes the run in flight. Results are published
    only while their run is still the current one, compared by run id, so a
    slow superseded decode can never overwrite a newer state.
    """

    def __init__(
        self,
        fetcher: BufferFetcher,
        config: SeisviewConfig | None = None,
        *,
        executor: Executor | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config or SeisviewConfig()
        self._executor = executor
        self._epoch = 0
        self._token: CancellationToken | None = None
        self._state = PipelineState(status=PipelineStatus.IDLE)
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def config(self) -> SeisviewConfig:
        return self._config

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` on every published state; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def abort(self) -> None:
        """Cancel the run in flight, if any."""
        token = self._token
        if token is None or token.cancelled or self._state.is_terminal:
            return
        token.cancel()
        logger.debug("Run {run_id} aborted", run_id=token.run_id)
        self._set_state(PipelineState(PipelineStatus.CANCELLED, token.run_id, self._state.request))

    async def load(self, request: WaveformRequest) -> PipelineState | None:
        """Fetch and render ``request``.

        Returns:
            the terminal state of this run, or ``None`` when it was superseded
            or aborted and its outcome discarded
        """
        token = self._supersede()
        with log_context(channel=request.channel_id, run_id=token.run_id):
            self._publish(token, PipelineState(PipelineStatus.FETCHING, token.run_id, request))
            try:
                buffer = await self._fetch(request, token)
                self._publish(token, PipelineState(PipelineStatus.DECODING, token.run_id, request))
                result = await self._decode(buffer, request, token)
            except DecodeAbortedError as exc:
                logger.debug("Discarding run {run_id}: {reason}", run_id=token.run_id, reason=exc.message)
                return None
            except (FetchFailedError, DecodeFailedError) as exc:
                logger.error(
                    "Run {run_id} failed: {reason}",
                    run_id=token.run_id,
                    reason=exc.message,
                    error_code=exc.error_code,
                )
                state = PipelineState(PipelineStatus.FAILED, token.run_id, request, error=exc)
            else:
                state = PipelineState(PipelineStatus.READY, token.run_id, request, result=result)
            return state if self._publish(token, state) else None

    def _supersede(self) -> CancellationToken:
        if self._token is not None and not self._token.cancelled:
            logger.debug("Run {run_id} superseded", run_id=self._token.run_id)
            self._token.cancel()
        self._epoch += 1
        self._token = CancellationToken(self._epoch)
        return self._token

    async def _fetch(self, request: WaveformRequest, token: CancellationToken) -> bytes:
        task = asyncio.ensure_future(self._fetcher(request))
        token.attach(task)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if token.cancelled and (current is None or not current.cancelling()):
                raise DecodeAbortedError(token.run_id, "fetch completed") from None
            raise
        except FetchFailedError:
            raise
        except Exception as exc:
            raise FetchFailedError(f"fetch failed: {exc}", details={"error_type": type(exc).__name__}) from exc

    async def _decode(self, buffer: bytes, request: WaveformRequest, token: CancellationToken) -> WaveformResult:
        token.raise_if_cancelled("decoding")
        work = functools.partial(
            process_buffer,
            buffer,
            request.channel,
            request.window,
            config=self._config,
            bins=request.bins,
            token=token,
        )
        if self._executor is None:
            return await asyncio.to_thread(work)
        return await asyncio.get_running_loop().run_in_executor(self._executor, work)

    def _publish(self, token: CancellationToken, state: PipelineState) -> bool:
        if token is not self._token or token.cancelled:
            logger.debug(
                "Dropping {status} from stale run {run_id}",
                status=state.status.value,
                run_id=token.run_id,
            )
            return False
        self._set_state(state)
        return True

    def _set_state(self, state: PipelineState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
