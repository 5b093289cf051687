"""Typed monitor events and the channel that carries them.

Monitors and the alert store publish events onto an EventChannel; each
consumer (the tracker's router, tests, user code) holds its own queue and
sees every event in publish order.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from .utils import get_logger, utc_now

if TYPE_CHECKING:
    from ..alerts.models import Alert
    from ..monitors.flow import FlowSnapshot
    from ..monitors.technical import Analysis

logger = get_logger(__name__)


class SignalType(str, Enum):
    """Direction of a technical signal."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class MarketImpact(str, Enum):
    """Expected price impact of an exchange flow."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Severity(str, Enum):
    """Severity of a flow or whale alert."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MovementType(str, Enum):
    """Direction of a significant price movement."""

    PUMP = "pump"
    DUMP = "dump"


@dataclass(frozen=True, kw_only=True)
class MonitorEvent:
    """Base class for everything published on an EventChannel."""

    symbol: str
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def event_type(self) -> str:
        """Snake-case event name, e.g. 'price_update'."""
        name = type(self).__name__
        return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")


@dataclass(frozen=True, kw_only=True)
class MonitoringStarted(MonitorEvent):
    monitor: str
    price: Decimal | None = None


@dataclass(frozen=True, kw_only=True)
class MonitoringStopped(MonitorEvent):
    monitor: str


@dataclass(frozen=True, kw_only=True)
class PriceUpdate(MonitorEvent):
    """A new price sample.

    Attributes:
        price: Observed price.
        change: Absolute change from the previous sample.
        change_pct: Percent change from the previous sample.
        is_fallback: True when the fetch failed and a default was used.
    """

    price: Decimal
    change: Decimal = Decimal("0")
    change_pct: float = 0.0
    is_fallback: bool = False


@dataclass(frozen=True, kw_only=True)
class SignificantMovement(MonitorEvent):
    current_price: Decimal
    previous_price: Decimal
    change_pct: float
    period: str
    movement: MovementType


@dataclass(frozen=True, kw_only=True)
class AnalysisUpdate(MonitorEvent):
    analysis: Analysis


@dataclass(frozen=True, kw_only=True)
class TradingSignal(MonitorEvent):
    signal: SignalType
    strength: float
    analysis: Analysis


@dataclass(frozen=True, kw_only=True)
class FlowUpdate(MonitorEvent):
    flows: FlowSnapshot


@dataclass(frozen=True, kw_only=True)
class FlowAlert(MonitorEvent):
    """Exchange inflow/outflow above the asset's critical level."""

    alert_type: str
    severity: Severity
    amount: float
    message: str


@dataclass(frozen=True, kw_only=True)
class WhaleDetected(MonitorEvent):
    """Whale-sized deposit or withdrawal on exchanges."""

    alert_type: str
    severity: Severity
    amount: float
    impact: MarketImpact
    message: str


@dataclass(frozen=True, kw_only=True)
class AlertTriggered(MonitorEvent):
    """One dispatch cycle of the alert store.

    Attributes:
        alert: The first alert (in insertion order) that fired.
        alert_ids: Every alert id that transitioned to triggered in this cycle.
        price: Price that caused the trigger.
    """

    alert: Alert
    alert_ids: tuple[str, ...]
    price: Decimal


class EventChannel:
    """Fan-out channel of monitor events.

    Usage:
        channel = EventChannel()
        queue = channel.subscribe()

        channel.publish(PriceUpdate(symbol="BTCUSDT", price=Decimal("50000")))
        event = await queue.get()
    """

    def __init__(self):
        self._subscribers: list[asyncio.Queue[MonitorEvent]] = []
        self._published = 0
        self._dropped = 0

    def subscribe(self, maxsize: int = 0) -> asyncio.Queue[MonitorEvent]:
        """Register a new consumer queue.

        Args:
            maxsize: Queue bound (0 for unbounded). Events for a full queue
                are dropped for that subscriber only.
        """
        queue: asyncio.Queue[MonitorEvent] = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[MonitorEvent]) -> None:
        """Remove a consumer queue. Unknown queues are ignored."""
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, event: MonitorEvent) -> int:
        """Publish an event to every subscriber.

        Returns:
            Number of subscribers that received it.
        """
        self._published += 1
        delivered = 0
        for queue in self._subscribers:
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                self._dropped += 1
                logger.warning(f"Subscriber queue full, dropped {event.event_type}")
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def get_stats(self) -> dict[str, Any]:
        """Get channel statistics."""
        return {
            "subscribers": len(self._subscribers),
            "published": self._published,
            "dropped": self._dropped,
        }
