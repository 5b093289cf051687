"""Market and on-chain data sources."""

from .base import (
    Candle,
    ExchangeFlow,
    FlowDirection,
    FlowSource,
    FlowStatistics,
    PriceSource,
    Ticker,
)
from .binance import BinanceClient
from .cryptoquant import CryptoQuantClient

__all__ = [
    "BinanceClient",
    "Candle",
    "CryptoQuantClient",
    "ExchangeFlow",
    "FlowDirection",
    "FlowSource",
    "FlowStatistics",
    "PriceSource",
    "Ticker",
]
