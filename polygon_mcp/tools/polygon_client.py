"""Async client for the Polygon.io stock endpoints."""

from typing import Any, Optional

import aiohttp

from polygon_mcp.core.models import PolygonStockResponse
from polygon_mcp.utils.config import (
    DAILY_OPEN_CLOSE_ENDPOINT,
    LAST_TRADE_ENDPOINT,
    Settings,
)
from polygon_mcp.utils.logger import logger


class PolygonAPIError(Exception):
    """Transport-level failure talking to Polygon (network error or non-2xx reply)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class PolygonClient:
    """Issues single GET requests against the Polygon REST API.

    No retries and no caching: each lookup is exactly one HTTP request.
    """

    def __init__(self, settings: Settings):
        self.base_url = settings.polygon_base_url.rstrip("/")
        self._params = {"apiKey": settings.polygon_api_key}
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def get_last_trade(self, symbol: str) -> PolygonStockResponse:
        return await self._get(f"{LAST_TRADE_ENDPOINT}/{symbol}")

    async def get_daily_open_close(self, symbol: str, date: str) -> PolygonStockResponse:
        return await self._get(f"{DAILY_OPEN_CLOSE_ENDPOINT}/{symbol}/{date}")

    async def _get(self, endpoint: str) -> PolygonStockResponse:
        url = f"{self.base_url}/{endpoint}"
        logger.info(f"Polygon GET {url}")

        session = self._get_session()
        try:
            async with session.get(url, params=self._params) as response:
                if response.status >= 400:
                    body = await self._read_error_body(response)
                    message = self._provider_message(body) or f"HTTP {response.status} {response.reason}"
                    raise PolygonAPIError(message, status=response.status)
                payload = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise PolygonAPIError(str(e) or type(e).__name__) from e

        # an empty or non-object body maps to a quote with no fields set
        if not isinstance(payload, dict):
            payload = {}
        return PolygonStockResponse.model_validate(payload)

    @staticmethod
    async def _read_error_body(response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json(content_type=None)
        except ValueError:
            return None

    @staticmethod
    def _provider_message(body: Any) -> Optional[str]:
        """Polygon error bodies carry a human-readable 'message' field."""
        if isinstance(body, dict) and body.get("message") is not None:
            return str(body["message"])
        return None

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
