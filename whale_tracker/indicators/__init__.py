"""Technical indicators used by the technical monitor."""

from .technical import (
    MACD,
    BollingerBands,
    calculate_bollinger_bands,
    calculate_ema,
    calculate_macd,
    calculate_resistance,
    calculate_rsi,
    calculate_support,
    calculate_volume_change,
    determine_signal,
)

__all__ = [
    "MACD",
    "BollingerBands",
    "calculate_bollinger_bands",
    "calculate_ema",
    "calculate_macd",
    "calculate_resistance",
    "calculate_rsi",
    "calculate_support",
    "calculate_volume_change",
    "determine_signal",
]
