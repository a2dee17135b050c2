"""FDSN dataselect client supplying raw miniSEED buffers."""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
from loguru import logger

from seisview.core.config import FetchConfig
from seisview.core.exceptions import FetchFailedError
from seisview.core.models.channel import ChannelKey, FDSNSource, TimeWindow, WaveformRequest

DATASELECT_PATH = "/fdsnws/dataselect/1/query"
_NO_DATA_STATUSES = frozenset({204, 404})
_FDSN_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def build_query_params(channel: ChannelKey, window: TimeWindow) -> dict[str, str]:
    """Dataselect query parameters; an empty location code is omitted."""
    params = {
        "net": channel.network,
        "sta": channel.station,
        "cha": channel.channel,
        "starttime": window.start.strftime(_FDSN_TIME_FORMAT),
        "endtime": window.end.strftime(_FDSN_TIME_FORMAT),
    }
    if channel.location:
        params["loc"] = channel.location
    return params


class DataselectClient:
    """Async HTTP client for ``/fdsnws/dataselect/1/query``.

    No retries are attempted; any transport error or unexpected status is
    reported as :class:`FetchFailedError`. The instance is callable so it can
    be handed straight to :class:`~seisview.core.pipeline.WaveformPipeline`.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        *,
        source: FDSNSource | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or FetchConfig()
        self.base_url = (source.value if source is not None else self.config.base_url).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> DataselectClient:
        self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {
                "base_url": self.base_url,
                "timeout": httpx.Timeout(self.config.timeout),
                "follow_redirects": True,
                "headers": {"User-Agent": self.config.user_agent},
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, channel: ChannelKey, window: TimeWindow) -> bytes:
        """Fetch miniSEED for ``channel`` over ``window``; empty bytes mean no data."""
        client = self._ensure_client()
        params = build_query_params(channel, window)
        url = f"{self.base_url}{DATASELECT_PATH}"
        try:
            response = await client.get(DATASELECT_PATH, params=params)
        except httpx.HTTPError as exc:
            raise FetchFailedError(f"GET {url}: {exc}", url=url) from exc

        if response.status_code in _NO_DATA_STATUSES:
            logger.info("No data from {url} for {channel}", url=url, channel=str(channel))
            return b""
        if response.status_code != 200:
            raise FetchFailedError(
                f"GET {url}: status {response.status_code}: {response.text[:200]}",
                url=url,
                status_code=response.status_code,
            )
        logger.debug("Fetched {size} bytes for {channel}", size=len(response.content), channel=str(channel))
        return response.content

    async def __call__(self, request: WaveformRequest) -> bytes:
        return await self.fetch(request.channel, request.window)
