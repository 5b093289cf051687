"""Technical indicator calculations.

All functions take plain price/volume sequences ordered oldest first and
return the latest indicator value, which is all the monitors need.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..adapters.base import Candle
from ..core.events import SignalType


@dataclass(frozen=True)
class MACD:
    """Latest MACD values."""

    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    """Latest Bollinger band levels."""

    upper: float
    middle: float
    lower: float


def _ema_series(values: np.ndarray, period: int) -> np.ndarray:
    """EMA over a series, seeded with the SMA of the first `period` values.

    The result is aligned with values[period - 1:].
    """
    k = 2.0 / (period + 1)
    out = np.empty(len(values) - period + 1)
    out[0] = values[:period].mean()
    for i, value in enumerate(values[period:], start=1):
        out[i] = value * k + out[i - 1] * (1 - k)
    return out


def calculate_ema(prices: Sequence[float], period: int) -> float:
    """Calculate the latest Exponential Moving Average.

    With fewer than `period` prices the last price is returned.
    """
    values = np.asarray(prices, dtype=float)
    if len(values) == 0:
        raise ValueError("prices must not be empty")
    if len(values) < period or period < 1:
        return float(values[-1])
    return float(_ema_series(values, period)[-1])


def calculate_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Calculate the latest Relative Strength Index with Wilder smoothing.

    Returns 50 when there is not enough data or prices never moved.
    """
    values = np.asarray(prices, dtype=float)
    if len(values) < period + 1 or period < 1:
        return 50.0

    changes = np.diff(values)
    gains = np.clip(changes, 0, None)
    losses = np.clip(-changes, 0, None)

    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0

    rs = avg_gain / avg_loss
    return round(float(100 - 100 / (1 + rs)), 2)


def calculate_macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACD | None:
    """Calculate the latest MACD line, signal line and histogram.

    Returns None when there are fewer than `slow + signal - 1` prices.
    """
    values = np.asarray(prices, dtype=float)
    if len(values) < slow + signal - 1:
        return None

    fast_ema = _ema_series(values, fast)[slow - fast:]
    slow_ema = _ema_series(values, slow)
    macd_line = fast_ema - slow_ema
    signal_line = _ema_series(macd_line, signal)

    macd_value = float(macd_line[-1])
    signal_value = float(signal_line[-1])
    return MACD(macd=macd_value, signal=signal_value, histogram=macd_value - signal_value)


def calculate_bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """Calculate Bollinger Bands over the last `period` prices."""
    window = np.asarray(prices, dtype=float)[-period:]
    if len(window) == 0:
        raise ValueError("prices must not be empty")

    middle = float(window.mean())
    std = float(window.std())
    return BollingerBands(
        upper=middle + std * std_dev,
        middle=middle,
        lower=middle - std * std_dev,
    )


def calculate_volume_change(volumes: Sequence[float], window: int = 5) -> float:
    """Percent change of the mean of the last `window` volumes vs the window before."""
    values = np.asarray(volumes, dtype=float)
    if len(values) < window * 2:
        return 0.0

    recent = values[-window:].mean()
    previous = values[-window * 2:-window].mean()
    if previous == 0:
        return 0.0
    return float((recent - previous) / previous * 100)


def calculate_support(candles: Sequence[Candle], lookback: int = 20) -> float | None:
    """Lowest low of the last `lookback` candles."""
    lows = [c.low for c in candles[-lookback:]]
    return min(lows) if lows else None


def calculate_resistance(candles: Sequence[Candle], lookback: int = 20) -> float | None:
    """Highest high of the last `lookback` candles."""
    highs = [c.high for c in candles[-lookback:]]
    return max(highs) if highs else None


def determine_signal(
    rsi: float | None,
    macd: MACD | None = None,
    volume_change: float = 0.0,
) -> tuple[SignalType, float]:
    """Score indicators into a signal.

    RSI zones, MACD histogram sign and a volume spike each add bullish or
    bearish points. A net score above 1 either way is a signal; strength is
    the net score over 4, capped at 1.

    Returns:
        Tuple of (signal, strength).
    """
    bullish = 0
    bearish = 0

    if rsi is not None:
        if rsi < 30:
            bullish += 2
        elif rsi < 40:
            bullish += 1
        elif rsi > 70:
            bearish += 2
        elif rsi > 60:
            bearish += 1

    if macd is not None:
        if macd.histogram > 0:
            bullish += 1
        else:
            bearish += 1

    if volume_change > 50:
        if rsi is not None and rsi < 50:
            bullish += 1
        else:
            bearish += 1

    net = bullish - bearish
    strength = min(abs(net) / 4, 1.0)

    if net > 1:
        return SignalType.BULLISH, strength
    if net < -1:
        return SignalType.BEARISH, strength
    return SignalType.NEUTRAL, 0.0
