"""CryptoQuant exchange flow client.

Fetches exchange inflow/outflow series and summarizes them into
FlowStatistics. Responses are cached for a minute since the upstream data
only moves at block cadence.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..core.cache import TTLCache
from ..core.config import CryptoQuantConfig, Credentials
from ..core.errors import APIError
from ..core.utils import get_logger, safe_divide
from .base import ExchangeFlow, FlowDirection, FlowStatistics

logger = get_logger(__name__)

# Single transfers above this size count as whale transactions.
WHALE_TRANSACTION_SIZE = 1000.0


def summarize_flow(rows: list[dict[str, Any]]) -> FlowStatistics:
    """Build statistics from raw `{"value": ...}` rows."""
    values = [float(row.get("value") or 0) for row in rows]
    whales = [v for v in values if v > WHALE_TRANSACTION_SIZE]
    total = sum(values)

    return FlowStatistics(
        total_24h=total,
        whale_volume=sum(whales),
        whale_transactions=len(whales),
        average_size=safe_divide(total, len(values)),
        max_transaction=max(values, default=0.0),
    )


class CryptoQuantClient:
    """Async client for CryptoQuant exchange flows.

    Example:
        ```python
        client = CryptoQuantClient(credentials=Credentials.from_env())
        flow = await client.get_exchange_flow(FlowDirection.INFLOW, "BTC")
        print(flow.statistics.total_24h)
        ```
    """

    SERVICE = "cryptoquant"

    def __init__(
        self,
        config: CryptoQuantConfig | None = None,
        credentials: Credentials | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config or CryptoQuantConfig()
        self.credentials = credentials
        self._client = client
        self._cache: TTLCache[ExchangeFlow] = TTLCache(
            default_ttl=self.config.cache_ttl_seconds,
            max_size=256,
        )

    async def connect(self) -> None:
        """Create the HTTP client if needed."""
        if self._client is not None:
            return

        headers = {}
        if self.credentials and self.credentials.cryptoquant_api_key:
            headers["Authorization"] = f"Bearer {self.credentials.cryptoquant_api_key}"

        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            headers=headers,
        )

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_exchange_flow(
        self,
        direction: FlowDirection,
        symbol: str,
        exchange: str = "all_exchange",
        window: str = "day",
        limit: int = 1,
    ) -> ExchangeFlow:
        """Get exchange inflow or outflow for an asset.

        Args:
            direction: Inflow or outflow.
            symbol: Base asset, e.g. 'BTC'.
            exchange: Exchange filter.
            window: Aggregation window ('day', 'hour', ...).
            limit: Number of data points.

        Raises:
            APIError: On HTTP or payload errors.
        """
        direction = FlowDirection(direction)
        endpoint = f"/{symbol.lower()}/exchange-flows/{direction.value}"
        cache_key = f"{endpoint}:{exchange}:{window}:{limit}"

        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        if self._client is None:
            await self.connect()

        try:
            response = await self._client.get(
                endpoint,
                params={"exchange": exchange, "window": window, "limit": limit},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise APIError(
                f"CryptoQuant {endpoint} returned {e.response.status_code}",
                self.SERVICE,
                status_code=e.response.status_code,
                response=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise APIError(f"CryptoQuant {endpoint} failed: {e}", self.SERVICE) from e

        result = payload.get("result") if isinstance(payload, dict) else None
        if not result:
            raise APIError(f"CryptoQuant {endpoint} returned no result", self.SERVICE)

        rows = result.get("data") or []
        flow = ExchangeFlow(
            direction=direction,
            symbol=symbol.upper(),
            exchange=exchange,
            statistics=summarize_flow(rows),
            latest=rows[0] if rows else {},
        )

        await self._cache.set(cache_key, flow)
        logger.debug(f"Fetched {direction.value} for {symbol}: {flow.statistics.total_24h:.2f}")
        return flow
