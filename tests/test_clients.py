"""Tests for the Binance and CryptoQuant clients."""

from decimal import Decimal

import httpx
import pytest

from whale_tracker.adapters.base import FlowDirection
from whale_tracker.adapters.binance import BinanceClient
from whale_tracker.adapters.cryptoquant import CryptoQuantClient, summarize_flow
from whale_tracker.core.errors import APIError


def mock_client(handler, base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)


class TestBinanceClient:
    """Tests for BinanceClient."""

    @pytest.mark.asyncio
    async def test_get_price(self):
        """Price is parsed as Decimal."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"symbol": "BTCUSDT", "price": "50123.45000000"})

        client = BinanceClient(client=mock_client(handler, "https://api.binance.com/api/v3"))

        price = await client.get_price("BTCUSDT")

        assert price == Decimal("50123.45")
        assert seen[0].url.path == "/api/v3/ticker/price"
        assert seen[0].url.params["symbol"] == "BTCUSDT"

    @pytest.mark.asyncio
    async def test_get_24hr_ticker(self):
        """Ticker fields are converted."""

        def handler(request):
            return httpx.Response(
                200,
                json={
                    "symbol": "ETHUSDT",
                    "priceChangePercent": "-3.250",
                    "volume": "123456.7",
                    "lastPrice": "2999.99",
                },
            )

        client = BinanceClient(client=mock_client(handler, "https://api.binance.com/api/v3"))

        ticker = await client.get_24hr_ticker("ETHUSDT")

        assert ticker.price_change_percent == -3.25
        assert ticker.volume == 123456.7
        assert ticker.last_price == Decimal("2999.99")

    @pytest.mark.asyncio
    async def test_get_klines(self):
        """Kline rows become candles, oldest first."""

        def handler(request):
            assert request.url.params["interval"] == "4h"
            assert request.url.params["limit"] == "2"
            return httpx.Response(
                200,
                json=[
                    [1, "100", "110", "90", "105", "12.5", 2, "0", 0, "0", "0", "0"],
                    [3, "105", "120", "100", "118", "20", 4, "0", 0, "0", "0", "0"],
                ],
            )

        client = BinanceClient(client=mock_client(handler, "https://api.binance.com/api/v3"))

        candles = await client.get_klines("BTCUSDT", "4h", 2)

        assert [c.close for c in candles] == [105.0, 118.0]
        assert candles[0].open_time == 1
        assert candles[1].high == 120.0
        assert candles[1].volume == 20.0

    @pytest.mark.asyncio
    async def test_http_error_becomes_api_error(self):
        """Non-2xx responses raise APIError with the status."""

        def handler(request):
            return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."})

        client = BinanceClient(client=mock_client(handler, "https://api.binance.com/api/v3"))

        with pytest.raises(APIError) as exc_info:
            await client.get_price("NOPE")

        assert exc_info.value.status_code == 400
        assert exc_info.value.service == "binance"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_api_error(self):
        """Connection failures raise APIError without a status."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = BinanceClient(client=mock_client(handler, "https://api.binance.com/api/v3"))

        with pytest.raises(APIError) as exc_info:
            await client.get_price("BTCUSDT")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_disconnect(self):
        """disconnect() drops the HTTP client."""
        client = BinanceClient(client=mock_client(lambda r: httpx.Response(200), "https://x"))

        await client.disconnect()

        assert client._client is None


class TestSummarizeFlow:
    """Tests for flow statistics."""

    def test_summarize(self):
        """Totals, whale transfers and sizes."""
        stats = summarize_flow([{"value": 500}, {"value": 1500}, {"value": 2500}, {"value": None}])

        assert stats.total_24h == 4500
        assert stats.whale_volume == 4000
        assert stats.whale_transactions == 2
        assert stats.average_size == 1125
        assert stats.max_transaction == 2500

    def test_empty(self):
        """No rows gives zeroed statistics."""
        stats = summarize_flow([])

        assert stats.total_24h == 0
        assert stats.average_size == 0
        assert stats.max_transaction == 0


class TestCryptoQuantClient:
    """Tests for CryptoQuantClient."""

    @staticmethod
    def flow_handler(calls: list):
        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(
                200,
                json={"status": {"code": 200}, "result": {"data": [{"value": 1234.5}]}},
            )

        return handler

    @pytest.mark.asyncio
    async def test_get_exchange_flow(self):
        """Flows are fetched per asset and direction."""
        calls = []
        client = CryptoQuantClient(
            client=mock_client(self.flow_handler(calls), "https://api.cryptoquant.com/v1")
        )

        flow = await client.get_exchange_flow(FlowDirection.OUTFLOW, "btc")

        assert calls[0].url.path == "/v1/btc/exchange-flows/outflow"
        assert calls[0].url.params["exchange"] == "all_exchange"
        assert flow.symbol == "BTC"
        assert flow.direction == FlowDirection.OUTFLOW
        assert flow.statistics.total_24h == 1234.5
        assert flow.latest == {"value": 1234.5}

    @pytest.mark.asyncio
    async def test_responses_are_cached(self):
        """A second identical request is served from cache."""
        calls = []
        client = CryptoQuantClient(
            client=mock_client(self.flow_handler(calls), "https://api.cryptoquant.com/v1")
        )

        first = await client.get_exchange_flow("inflow", "BTC")
        second = await client.get_exchange_flow("inflow", "BTC")
        await client.get_exchange_flow("outflow", "BTC")

        assert first is second
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_missing_result_raises(self):
        """A payload without result is an API error."""

        def handler(request):
            return httpx.Response(200, json={"status": {"code": 200}})

        client = CryptoQuantClient(
            client=mock_client(handler, "https://api.cryptoquant.com/v1")
        )

        with pytest.raises(APIError, match="no result"):
            await client.get_exchange_flow(FlowDirection.INFLOW, "BTC")

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        """401 surfaces as APIError with status."""

        def handler(request):
            return httpx.Response(401, json={"error": "invalid api key"})

        client = CryptoQuantClient(
            client=mock_client(handler, "https://api.cryptoquant.com/v1")
        )

        with pytest.raises(APIError) as exc_info:
            await client.get_exchange_flow(FlowDirection.INFLOW, "BTC")

        assert exc_info.value.status_code == 401
