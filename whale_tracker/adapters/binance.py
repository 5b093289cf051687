"""Binance spot REST client.

Read-only market data: price, 24h ticker and klines.

References:
- https://developers.binance.com/docs/binance-spot-api-docs/rest-api
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import httpx

from ..core.config import BinanceConfig, Credentials
from ..core.errors import APIError
from ..core.utils import get_logger, to_decimal
from .base import Candle, Ticker

logger = get_logger(__name__)


class BinanceClient:
    """Async client for the public Binance spot endpoints.

    Example:
        ```python
        client = BinanceClient()
        await client.connect()
        price = await client.get_price("BTCUSDT")
        await client.disconnect()
        ```
    """

    SERVICE = "binance"

    def __init__(
        self,
        config: BinanceConfig | None = None,
        credentials: Credentials | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize Binance client.

        Args:
            config: API configuration.
            credentials: Optional API key (sent as X-MBX-APIKEY).
            client: Pre-built httpx client, mainly for tests.
        """
        self.config = config or BinanceConfig()
        self.credentials = credentials
        self._client = client

    @property
    def base_url(self) -> str:
        return f"{self.config.endpoint}/api/v3"

    async def connect(self) -> None:
        """Create the HTTP client if needed."""
        if self._client is not None:
            return

        headers = {}
        if self.credentials and self.credentials.binance_api_key:
            headers["X-MBX-APIKEY"] = self.credentials.binance_api_key

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.timeout_seconds,
            headers=headers,
        )
        logger.info(f"Binance client ready ({self.config.endpoint})")

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if self._client is None:
            await self.connect()

        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise APIError(
                f"Binance {path} returned {e.response.status_code}",
                self.SERVICE,
                status_code=e.response.status_code,
                response=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise APIError(f"Binance {path} failed: {e}", self.SERVICE) from e

    async def ping(self) -> bool:
        """Test connectivity."""
        await self._get("/ping")
        return True

    async def get_price(self, symbol: str) -> Decimal:
        """Get the latest price for a symbol."""
        data = await self._get("/ticker/price", {"symbol": symbol})
        return to_decimal(data["price"])

    async def get_24hr_ticker(self, symbol: str) -> Ticker:
        """Get 24-hour rolling statistics for a symbol."""
        data = await self._get("/ticker/24hr", {"symbol": symbol})
        return Ticker(
            symbol=data.get("symbol", symbol),
            price_change_percent=float(data.get("priceChangePercent", 0)),
            volume=float(data.get("volume", 0)),
            last_price=to_decimal(data["lastPrice"]) if data.get("lastPrice") else None,
            raw=data,
        )

    async def get_klines(
        self,
        symbol: str,
        interval: str = "1h",
        limit: int = 100,
    ) -> list[Candle]:
        """Get candles, oldest first."""
        rows = await self._get(
            "/klines",
            {"symbol": symbol, "interval": interval, "limit": limit},
        )
        return [
            Candle(
                open_time=row[0],
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]),
                close_time=row[6],
            )
            for row in rows
        ]
