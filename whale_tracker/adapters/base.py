"""Data-source contracts consumed by the monitors.

Monitors depend only on these protocols; the Binance and CryptoQuant clients
are one implementation each, and tests pass in mocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..core.utils import utc_now


class FlowDirection(str, Enum):
    """Exchange flow direction."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"


@dataclass
class Candle:
    """One OHLCV candle."""

    open: float
    high: float
    low: float
    close: float
    volume: float
    open_time: int | None = None
    close_time: int | None = None


@dataclass
class Ticker:
    """24-hour rolling ticker statistics.

    Attributes:
        symbol: Trading pair.
        price_change_percent: Percent change over 24h.
        volume: Base-asset volume over 24h.
        last_price: Last traded price, if reported.
        raw: Raw payload.
    """

    symbol: str
    price_change_percent: float
    volume: float
    last_price: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class FlowStatistics:
    """Aggregates over an exchange flow series.

    Attributes:
        total_24h: Total volume over the window.
        whale_volume: Volume from whale-sized transfers.
        whale_transactions: Number of whale-sized transfers.
        net_balance: Outflow minus inflow, where known.
        average_size: Mean transfer size.
        max_transaction: Largest single transfer.
    """

    total_24h: float = 0.0
    whale_volume: float = 0.0
    whale_transactions: int = 0
    net_balance: float = 0.0
    average_size: float = 0.0
    max_transaction: float = 0.0


@dataclass
class ExchangeFlow:
    """Inflow or outflow for one asset and exchange."""

    direction: FlowDirection
    symbol: str
    statistics: FlowStatistics = field(default_factory=FlowStatistics)
    exchange: str = "all_exchange"
    latest: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


@runtime_checkable
class PriceSource(Protocol):
    """Market data source (e.g. Binance)."""

    async def get_price(self, symbol: str) -> Decimal:
        ...

    async def get_24hr_ticker(self, symbol: str) -> Ticker:
        ...

    async def get_klines(self, symbol: str, interval: str = "1h", limit: int = 100) -> list[Candle]:
        ...


@runtime_checkable
class FlowSource(Protocol):
    """On-chain exchange flow source (e.g. CryptoQuant)."""

    async def get_exchange_flow(
        self,
        direction: FlowDirection,
        symbol: str,
        exchange: str = "all_exchange",
        window: str = "day",
    ) -> ExchangeFlow:
        ...
