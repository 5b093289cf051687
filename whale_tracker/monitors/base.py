"""Base monitor class for timer-driven pollers.

Provides common functionality for all monitors:
- One scheduler job per symbol, idempotent start/stop
- Liveness check between fetch and publish
- Error absorption and statistics tracking
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Generic, TypeVar

from ..core.errors import ErrorTracker
from ..core.events import EventChannel, MonitorEvent, MonitoringStopped
from ..core.utils import get_logger
from ..scheduler import Scheduler

logger = get_logger(__name__)

T = TypeVar("T")

# Default prices used when no price has been observed yet and the source fails.
REFERENCE_PRICES: dict[str, Decimal] = {
    "BTCUSDT": Decimal("50000"),
    "ETHUSDT": Decimal("3000"),
    "BNBUSDT": Decimal("400"),
    "SOLUSDT": Decimal("150"),
    "ADAUSDT": Decimal("0.5"),
}
DEFAULT_REFERENCE_PRICE = Decimal("100")


def reference_price(symbol: str) -> Decimal:
    """Fallback price for a symbol."""
    return REFERENCE_PRICES.get(symbol.upper(), DEFAULT_REFERENCE_PRICE)


@dataclass
class MonitorStats:
    """Statistics for a monitor.

    Attributes:
        ticks: Completed ticks.
        fallbacks: Ticks that used fallback data.
        errors: Absorbed errors.
        skipped: Ticks discarded because the symbol stopped mid-fetch.
        last_tick: Timestamp of last completed tick.
        last_error: Last error message, if any.
    """

    ticks: int = 0
    fallbacks: int = 0
    errors: int = 0
    skipped: int = 0
    last_tick: datetime | None = None
    last_error: str | None = None

    def record_tick(self, fallback: bool = False) -> None:
        """Record a completed tick."""
        self.ticks += 1
        if fallback:
            self.fallbacks += 1
        self.last_tick = datetime.now(timezone.utc)

    def record_error(self, error: str) -> None:
        """Record an absorbed error."""
        self.errors += 1
        self.last_error = error

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "ticks": self.ticks,
            "fallbacks": self.fallbacks,
            "errors": self.errors,
            "skipped": self.skipped,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "last_error": self.last_error,
        }


class BaseMonitor(ABC, Generic[T]):
    """Abstract base class for monitors.

    A tick is collect() followed by process(). collect() may suspend on the
    network and must never raise: failures turn into fallback data.
    process() is synchronous and publishes derived events.

    Subclasses must implement:
    - name: Property returning monitor name
    - collect(): Fetch one unit of data for a symbol
    - process(): Update history and publish events

    Usage:
        monitor = PriceMonitor(source, scheduler, channel)
        await monitor.start("BTCUSDT")
        await monitor.tick("BTCUSDT")  # drive a tick directly
        await monitor.stop("BTCUSDT")
    """

    def __init__(
        self,
        scheduler: Scheduler,
        events: EventChannel | None = None,
        interval_seconds: float = 60.0,
        error_tracker: ErrorTracker | None = None,
    ):
        """Initialize monitor.

        Args:
            scheduler: Scheduler that owns the per-symbol jobs.
            events: Channel to publish events on.
            interval_seconds: Default poll interval.
            error_tracker: Shared tracker for absorbed errors.
        """
        self.scheduler = scheduler
        self.events = events
        self.interval_seconds = interval_seconds
        self.error_tracker = error_tracker or ErrorTracker()
        self.stats = MonitorStats()
        self._intervals: dict[str, float] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Monitor name for logging and job names."""
        pass

    @abstractmethod
    async def collect(self, symbol: str) -> T:
        """Fetch one unit of data, falling back on failure."""
        pass

    @abstractmethod
    def process(self, symbol: str, data: T) -> None:
        """Update history and publish events for collected data."""
        pass

    def job_name(self, symbol: str) -> str:
        return f"{self.name}:{symbol.upper()}"

    def is_monitoring(self, symbol: str) -> bool:
        """Whether a job is registered for the symbol."""
        return self.scheduler.has_job(self.job_name(symbol))

    @property
    def active_symbols(self) -> list[str]:
        return [s for s in self._intervals if self.is_monitoring(s)]

    def interval_for(self, symbol: str) -> float:
        """Poll interval in effect for a symbol."""
        return self._intervals.get(symbol.upper(), self.interval_seconds)

    def _publish(self, event: MonitorEvent) -> None:
        if self.events is not None:
            self.events.publish(event)

    def _absorb(self, error: Exception, symbol: str, operation: str) -> None:
        """Log and count an error that must not stop the monitor."""
        self.stats.record_error(str(error))
        self.error_tracker.handle_error(
            error,
            {"monitor": self.name, "symbol": symbol, "operation": operation},
        )

    async def on_start(self, symbol: str) -> None:
        """Hook run after a symbol's job is registered."""

    async def start(self, symbol: str, interval_seconds: float | None = None) -> bool:
        """Start polling a symbol.

        Args:
            symbol: Trading pair.
            interval_seconds: Override the default interval for this symbol.

        Returns:
            True if started, False if the symbol was already monitored.
        """
        symbol = symbol.upper()
        if self.is_monitoring(symbol):
            return False

        interval = interval_seconds or self.interval_seconds
        self._intervals[symbol] = interval
        self.scheduler.add_job(
            name=self.job_name(symbol),
            func=functools.partial(self._scheduled_tick, symbol),
            interval_seconds=interval,
        )
        logger.info(f"{self.name} monitor started for {symbol} (interval: {interval}s)")

        await self.on_start(symbol)
        return True

    async def stop(self, symbol: str) -> bool:
        """Stop polling a symbol.

        Returns:
            True if stopped, False if it was not monitored.
        """
        symbol = symbol.upper()
        self._intervals.pop(symbol, None)
        if not self.scheduler.remove_job(self.job_name(symbol)):
            return False

        self._publish(MonitoringStopped(symbol=symbol, monitor=self.name))
        logger.info(f"{self.name} monitor stopped for {symbol}")
        return True

    async def stop_all(self) -> None:
        """Stop every symbol."""
        for symbol in list(self._intervals):
            await self.stop(symbol)

    async def tick(self, symbol: str, live_only: bool = False) -> T | None:
        """Run one collect/process cycle.

        Args:
            symbol: Trading pair.
            live_only: Drop the result if the symbol stopped during collect().

        Returns:
            Collected data, or None if it was dropped.
        """
        symbol = symbol.upper()
        data = await self.collect(symbol)

        if live_only and not self.is_monitoring(symbol):
            self.stats.skipped += 1
            logger.debug(f"{self.name} result for {symbol} dropped after stop")
            return None

        self.process(symbol, data)
        self.stats.record_tick(fallback=bool(getattr(data, "is_fallback", False)))
        return data

    async def _scheduled_tick(self, symbol: str) -> None:
        try:
            await self.tick(symbol, live_only=True)
        except Exception as e:
            self._absorb(e, symbol, "tick")

    def get_stats(self) -> dict[str, Any]:
        """Get monitor statistics."""
        return {
            "name": self.name,
            "symbols": self.active_symbols,
            "interval_seconds": self.interval_seconds,
            **self.stats.to_dict(),
        }
