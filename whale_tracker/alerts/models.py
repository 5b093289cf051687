"""Alert, trigger record and notification types."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from ..core.utils import format_price, utc_now


class AlertType(str, Enum):
    """Price condition that fires an alert."""

    ABOVE = "above"
    BELOW = "below"
    CROSS = "cross"


class AlertStatus(str, Enum):
    """Alert lifecycle state."""

    ACTIVE = "active"
    TRIGGERED = "triggered"


class NotificationKind(str, Enum):
    """What a notification is about; selects the leading glyph."""

    PRICE_ALERT = "price_alert"
    WHALE_DETECTED = "whale_detected"
    FLOW_ALERT = "flow_alert"
    SIGNAL = "signal"
    MOVEMENT = "movement"
    TEST = "test"


CooldownKey = tuple[str, AlertType, Decimal]


def new_alert_id() -> str:
    """Generate a random 128-bit alert id."""
    return str(uuid.uuid4())


@dataclass
class AlertDefinition:
    """User input for creating an alert.

    Attributes:
        symbol: Trading pair, e.g. 'BTCUSDT'.
        price: Target price level.
        type: Trigger condition.
        repeat: Return to active after each trigger.
        id: Caller-chosen id; generated when omitted.
        metadata: Free-form extra fields kept on the alert.
    """

    symbol: str
    price: Decimal | float | int | str
    type: AlertType | str = AlertType.ABOVE
    repeat: bool = False
    id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Alert:
    """A stored trigger condition. Only AlertStore mutates these."""

    id: str
    symbol: str
    price: Decimal
    type: AlertType
    status: AlertStatus = AlertStatus.ACTIVE
    repeat: bool = False
    last_price: Decimal | None = None
    created: datetime = field(default_factory=utc_now)
    triggered_at: datetime | None = None
    triggered_price: Decimal | None = None
    trigger_count: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def cooldown_key(self) -> CooldownKey:
        """Alerts with equal keys share one cooldown window."""
        return (self.symbol, self.type, self.price)

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE

    def snapshot(self) -> Alert:
        """Detached copy safe to hand to readers."""
        return replace(self, metadata=dict(self.metadata))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "price": str(self.price),
            "type": self.type.value,
            "status": self.status.value,
            "repeat": self.repeat,
            "last_price": str(self.last_price) if self.last_price is not None else None,
            "created": self.created.isoformat(),
            "triggered_at": self.triggered_at.isoformat() if self.triggered_at else None,
            "triggered_price": (
                str(self.triggered_price) if self.triggered_price is not None else None
            ),
            "trigger_count": self.trigger_count,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class TriggerRecord:
    """Immutable history entry for one firing.

    Attributes:
        alert: Snapshot of the first alert that fired, taken at trigger time.
        alert_ids: All alert ids that fired together under the same key.
        price: Price that caused the trigger.
        triggered_at: Trigger timestamp.
    """

    alert: Alert
    alert_ids: tuple[str, ...]
    price: Decimal
    triggered_at: datetime

    @property
    def symbol(self) -> str:
        return self.alert.symbol

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            **self.alert.to_dict(),
            "alert_ids": list(self.alert_ids),
            "triggered_price": str(self.price),
            "triggered_at": self.triggered_at.isoformat(),
        }


@dataclass
class Notification:
    """A rendered message on its way to the notifiers.

    Attributes:
        kind: What the message is about.
        message: Main text.
        symbol: Trading pair, if any.
        price: Price to show, if any.
        amount: Flow amount to show, if any.
        impact: Market impact label, if any.
        direction: 'above'/'below' for price alerts.
        data: Additional structured data.
        timestamp: When the notification was created.
    """

    kind: NotificationKind
    message: str
    symbol: str | None = None
    price: Decimal | None = None
    amount: float | None = None
    impact: str | None = None
    direction: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def glyph(self) -> str:
        """Leading emoji for chat channels."""
        if self.kind == NotificationKind.PRICE_ALERT:
            return "📈" if self.direction == "above" else "📉"
        return {
            NotificationKind.WHALE_DETECTED: "🐋",
            NotificationKind.FLOW_ALERT: "🔄",
            NotificationKind.SIGNAL: "📊",
            NotificationKind.MOVEMENT: "⚡",
        }.get(self.kind, "📢")

    def format_lines(self) -> list[str]:
        """Body lines shared by all text channels (no glyph, no timestamp)."""
        lines = []
        if self.symbol:
            lines.append(self.symbol)
        if self.message:
            lines.append(self.message)
        if self.price is not None:
            lines.append(f"Price: ${format_price(self.price)}")
        if self.amount is not None:
            lines.append(f"Amount: {self.amount:,.2f}")
        if self.impact:
            lines.append(f"Impact: {self.impact}")
        return lines

    def format_text(self) -> str:
        """Format as plain text."""
        lines = self.format_lines()
        head = f"{self.glyph} {lines[0]}" if lines else self.glyph
        body = [head, *lines[1:]]
        body.append(f"\n⏰ {self.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        return "\n".join(body)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "symbol": self.symbol,
            "price": str(self.price) if self.price is not None else None,
            "amount": self.amount,
            "impact": self.impact,
            "direction": self.direction,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
