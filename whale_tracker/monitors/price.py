"""Price poller.

Samples the current price on a fixed interval, publishes a PriceUpdate per
sample and a SignificantMovement when the price moves more than a threshold
over a short or long window.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from ..adapters.base import PriceSource
from ..core.config import PriceMonitorConfig
from ..core.errors import ErrorTracker
from ..core.events import (
    EventChannel,
    MonitoringStarted,
    MovementType,
    PriceUpdate,
    SignificantMovement,
)
from ..core.utils import get_logger, safe_divide, utc_now
from ..scheduler import Scheduler
from .base import BaseMonitor, reference_price

logger = get_logger(__name__)


@dataclass(frozen=True)
class PriceSample:
    """One observed price."""

    price: Decimal
    is_fallback: bool = False
    timestamp: datetime = field(default_factory=utc_now)


def _period_label(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        return f"{int(seconds // 60)}m"
    return f"{seconds:g}s"


class PriceMonitor(BaseMonitor[PriceSample]):
    """Polls a PriceSource and keeps a bounded price history per symbol.

    Usage:
        monitor = PriceMonitor(binance, scheduler, channel)
        await monitor.start("BTCUSDT", interval_seconds=5)
    """

    def __init__(
        self,
        source: PriceSource | None,
        scheduler: Scheduler,
        events: EventChannel | None = None,
        config: PriceMonitorConfig | None = None,
        error_tracker: ErrorTracker | None = None,
    ):
        self.config = config or PriceMonitorConfig()
        super().__init__(
            scheduler,
            events=events,
            interval_seconds=self.config.interval_seconds,
            error_tracker=error_tracker,
        )
        self.source = source
        self._history: dict[str, deque[PriceSample]] = {}

    @property
    def name(self) -> str:
        return "price"

    def _samples(self, symbol: str) -> deque[PriceSample]:
        if symbol not in self._history:
            self._history[symbol] = deque(maxlen=self.config.history_size)
        return self._history[symbol]

    def get_history(self, symbol: str) -> list[PriceSample]:
        return list(self._history.get(symbol.upper(), ()))

    def last_price(self, symbol: str) -> Decimal | None:
        samples = self._history.get(symbol.upper())
        return samples[-1].price if samples else None

    async def get_current_price(self, symbol: str) -> tuple[Decimal, bool]:
        """Fetch a price, falling back to the last known or reference price.

        Returns:
            Tuple of (price, is_fallback).
        """
        symbol = symbol.upper()
        if self.source is not None:
            try:
                return await self.source.get_price(symbol), False
            except Exception as e:
                self._absorb(e, symbol, "get_price")

        fallback = self.last_price(symbol)
        if fallback is None:
            fallback = reference_price(symbol)
        logger.warning(f"Using fallback price for {symbol}: {fallback}")
        return fallback, True

    async def on_start(self, symbol: str) -> None:
        price, _ = await self.get_current_price(symbol)
        self._publish(MonitoringStarted(symbol=symbol, monitor=self.name, price=price))

    async def collect(self, symbol: str) -> PriceSample:
        price, is_fallback = await self.get_current_price(symbol)
        return PriceSample(price=price, is_fallback=is_fallback)

    def process(self, symbol: str, data: PriceSample) -> None:
        samples = self._samples(symbol)
        previous = samples[-1].price if samples else None
        samples.append(data)

        change = data.price - previous if previous is not None else Decimal("0")
        change_pct = float(safe_divide(change * 100, previous)) if previous else 0.0

        self._publish(
            PriceUpdate(
                symbol=symbol,
                price=data.price,
                change=change,
                change_pct=change_pct,
                is_fallback=data.is_fallback,
                timestamp=data.timestamp,
            )
        )
        if not data.is_fallback:
            self.check_significant_movements(symbol)

    def check_significant_movements(self, symbol: str) -> list[SignificantMovement]:
        """Compare the latest sample against the short and long windows.

        Windows are measured in samples: window seconds divided by the
        symbol's poll interval. Fallback samples are never compared: the
        baseline is the oldest live sample inside the window.

        Returns:
            Movement events published for this sample.
        """
        samples = self._history.get(symbol)
        if not samples or len(samples) < 2 or samples[-1].is_fallback:
            return []

        interval = self.interval_for(symbol)
        current = samples[-1].price
        windows = (
            (self.config.short_window_seconds, self.config.short_window_threshold_pct),
            (self.config.long_window_seconds, self.config.long_window_threshold_pct),
        )

        events = []
        for window_seconds, threshold in windows:
            lookback = max(1, round(window_seconds / interval))
            start = max(0, len(samples) - 1 - lookback)
            baseline = next(
                (samples[i] for i in range(start, len(samples) - 1) if not samples[i].is_fallback),
                None,
            )
            if baseline is None or baseline.price <= 0:
                continue
            previous = baseline.price

            change_pct = float((current - previous) / previous * 100)
            if abs(change_pct) <= threshold:
                continue

            event = SignificantMovement(
                symbol=symbol,
                current_price=current,
                previous_price=previous,
                change_pct=change_pct,
                period=_period_label(window_seconds),
                movement=MovementType.PUMP if change_pct > 0 else MovementType.DUMP,
            )
            logger.info(
                f"Significant movement: {symbol} {change_pct:+.2f}% over {event.period}"
            )
            self._publish(event)
            events.append(event)

        return events

    def get_statistics(self, symbol: str) -> dict | None:
        """Summary of the stored history, or None if nothing was sampled."""
        samples = self._history.get(symbol.upper())
        if not samples:
            return None

        prices = [s.price for s in samples]
        low, high = min(prices), max(prices)
        average = sum(prices) / len(prices)
        return {
            "symbol": symbol.upper(),
            "current": prices[-1],
            "min": low,
            "max": high,
            "average": average,
            "range": high - low,
            "volatility_pct": safe_divide((high - low) * 100, average),
            "samples": len(prices),
            "fallbacks": sum(1 for s in samples if s.is_fallback),
        }
