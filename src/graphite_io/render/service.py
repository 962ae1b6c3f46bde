from __future__ import annotations

import base64
from typing import List, Optional

import httpx
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from ..errors import HttpQueryFailure, RenderDecodeError, RenderTransportError
from ..models import DataPoints
from .query import RENDER_PATH, GraphiteQuery

_SERIES = TypeAdapter(List[DataPoints])


def normalize_server_url(server_url: str) -> str:
    """Strip the trailing slash and /render suffix from a root URL."""
    url = server_url.strip().rstrip("/")
    if url.endswith(RENDER_PATH):
        url = url[: -len(RENDER_PATH)]
    return url.rstrip("/")


def basic_auth_header(credentials: str) -> str:
    """`user:password` or an already encoded token -> Basic header value."""
    if ":" in credentials:
        credentials = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return f"Basic {credentials}"


class GraphiteRenderApiService:
    """Client of the Graphite render API.

    Owns its httpx.AsyncClient unless one is passed in, in which case close()
    leaves it open for its owner.
    """

    def __init__(
        self,
        server_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        basic_auth: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.server_url = normalize_server_url(server_url)
        self._headers = {"Accept": "application/json"}
        if basic_auth:
            self._headers["Authorization"] = basic_auth_header(basic_auth)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def execute(self, query: GraphiteQuery) -> List[DataPoints]:
        """Run one render query and parse the series it returns."""
        url = f"{self.server_url}{RENDER_PATH}"
        try:
            response = await self._client.get(url, params=query.to_params(), headers=self._headers)
        except httpx.TransportError as exc:
            raise RenderTransportError(f"The render API at {url} could not be reached: {exc}") from exc

        if response.status_code >= 300:
            raise HttpQueryFailure(response.status_code, response.text)

        try:
            series = _SERIES.validate_json(response.content)
        except ValidationError as exc:
            raise RenderDecodeError(f"Unexpected render API response: {exc}") from exc

        logger.debug(f"Render query returned {len(series)} series")
        return series

    async def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
