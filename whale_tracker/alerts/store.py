"""Alert store: owns alert definitions and decides which ones fire.

Provides:
- Capacity-bounded alert collection keyed by alert id
- Trigger evaluation for above / below / cross conditions
- Cooldown keyed by (symbol, type, target price)
- Bounded trigger history
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable

from ..core.config import AlertsConfig
from ..core.errors import AlertCapacityError, ValidationError
from ..core.events import AlertTriggered, EventChannel
from ..core.utils import get_logger, to_decimal, utc_now
from .dispatcher import AlertDispatcher
from .models import (
    Alert,
    AlertDefinition,
    AlertStatus,
    AlertType,
    CooldownKey,
    TriggerRecord,
    new_alert_id,
)

logger = get_logger(__name__)


class AlertStore:
    """Holds alerts and evaluates them against incoming prices.

    Alerts sharing a (symbol, type, price) key share one cooldown window.
    When several of them match the same price update, they all transition
    to triggered together and produce one history record and one dispatch.

    Usage:
        store = AlertStore(dispatcher=dispatcher, max_alerts=100)
        alert = store.add_alert(AlertDefinition(symbol="BTCUSDT", price=50000))

        await store.process_price_update("BTCUSDT", Decimal("50500"))
        store.get_alerts(status=AlertStatus.TRIGGERED)
    """

    def __init__(
        self,
        dispatcher: AlertDispatcher | None = None,
        events: EventChannel | None = None,
        max_alerts: int = 100,
        cooldown_seconds: float = 3600.0,
        history_size: int = 100,
        recent_triggers: int = 10,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize alert store.

        Args:
            dispatcher: Receives each triggered alert.
            events: Channel for AlertTriggered events.
            max_alerts: Maximum alerts held across all symbols.
            cooldown_seconds: Minimum time between firings of one key.
            history_size: Trigger records kept (oldest evicted first).
            recent_triggers: Records included in get_statistics().
            clock: Time source returning aware datetimes.
        """
        self.dispatcher = dispatcher
        self.events = events
        self.max_alerts = max_alerts
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.recent_triggers = recent_triggers
        self._clock = clock

        self._alerts: dict[str, Alert] = {}
        self._last_trigger: dict[CooldownKey, datetime] = {}
        self._history: deque[TriggerRecord] = deque(maxlen=history_size)

    @classmethod
    def from_config(cls, config: AlertsConfig, **kwargs) -> AlertStore:
        """Build from the alerts config section."""
        return cls(
            max_alerts=config.max_alerts,
            cooldown_seconds=config.cooldown_seconds,
            history_size=config.history_size,
            recent_triggers=config.recent_triggers,
            **kwargs,
        )

    def __len__(self) -> int:
        return len(self._alerts)

    def add_alert(self, definition: AlertDefinition) -> Alert:
        """Create an active alert.

        Args:
            definition: Alert parameters.

        Returns:
            Snapshot of the stored alert.

        Raises:
            AlertCapacityError: If the store is full. Nothing is evicted.
            ValidationError: On empty symbol, non-positive price, unknown
                type or duplicate id.
        """
        if len(self._alerts) >= self.max_alerts:
            raise AlertCapacityError(self.max_alerts)

        symbol = (definition.symbol or "").strip().upper()
        if not symbol:
            raise ValidationError("Alert symbol is required", "symbol", definition.symbol)

        price = to_decimal(definition.price)
        if not price.is_finite() or price <= 0:
            raise ValidationError("Alert price must be positive", "price", definition.price)

        try:
            alert_type = AlertType(definition.type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown alert type: {definition.type}", "type", definition.type
            ) from e

        alert_id = definition.id or new_alert_id()
        if alert_id in self._alerts:
            raise ValidationError(f"Alert {alert_id} already exists", "id", alert_id)

        alert = Alert(
            id=alert_id,
            symbol=symbol,
            price=price,
            type=alert_type,
            repeat=definition.repeat,
            created=self._clock(),
            metadata=dict(definition.metadata),
        )
        self._alerts[alert_id] = alert

        logger.info(f"Alert added: {symbol} {alert_type.value} {price} ({alert_id})")
        return alert.snapshot()

    def remove_alert(self, alert_id: str) -> bool:
        """Remove an alert.

        Returns:
            True if it existed, False otherwise. Never raises.
        """
        alert = self._alerts.pop(alert_id, None)
        if alert is None:
            return False

        logger.info(f"Alert removed: {alert.symbol} {alert.type.value} {alert.price} ({alert_id})")
        return True

    def get_alert(self, alert_id: str) -> Alert | None:
        """Get a snapshot of one alert."""
        alert = self._alerts.get(alert_id)
        return alert.snapshot() if alert else None

    def get_alerts(
        self,
        symbol: str | None = None,
        status: AlertStatus | str | None = None,
        alert_type: AlertType | str | None = None,
    ) -> list[Alert]:
        """Get alert snapshots matching all given filters.

        Args:
            symbol: Trading pair.
            status: Lifecycle state.
            alert_type: Trigger condition.
        """
        alerts = self._alerts.values()

        if symbol:
            symbol = symbol.upper()
            alerts = [a for a in alerts if a.symbol == symbol]
        if status:
            status = AlertStatus(status)
            alerts = [a for a in alerts if a.status == status]
        if alert_type:
            alert_type = AlertType(alert_type)
            alerts = [a for a in alerts if a.type == alert_type]

        return [a.snapshot() for a in alerts]

    def _check(self, alert: Alert, price: Decimal) -> bool:
        """Evaluate one active alert and remember the sample."""
        previous = alert.last_price
        alert.last_price = price

        if alert.type == AlertType.ABOVE:
            return price >= alert.price
        if alert.type == AlertType.BELOW:
            return price <= alert.price

        if previous is None:
            return False
        return (previous < alert.price <= price) or (previous > alert.price >= price)

    def _in_cooldown(self, key: CooldownKey, now: datetime) -> bool:
        last = self._last_trigger.get(key)
        return last is not None and now - last < self.cooldown

    async def process_price_update(
        self,
        symbol: str,
        price: Decimal | float | str,
    ) -> list[TriggerRecord]:
        """Evaluate every active alert on `symbol` against one price.

        All state changes happen before anything is dispatched, so a
        notifier failure never rolls back a trigger.

        Returns:
            Trigger records created by this update.
        """
        symbol = symbol.upper()
        price = to_decimal(price)
        now = self._clock()

        matched: dict[CooldownKey, list[Alert]] = {}
        for alert in list(self._alerts.values()):
            if alert.symbol != symbol or not alert.is_active:
                continue
            if self._check(alert, price):
                matched.setdefault(alert.cooldown_key, []).append(alert)

        records: list[TriggerRecord] = []
        for key, alerts in matched.items():
            if self._in_cooldown(key, now):
                logger.debug(f"Alert {symbol} {key[1].value} {key[2]} in cooldown")
                continue

            self._last_trigger[key] = now
            for alert in alerts:
                alert.status = AlertStatus.TRIGGERED
                alert.triggered_at = now
                alert.triggered_price = price
                alert.trigger_count += 1

            record = TriggerRecord(
                alert=alerts[0].snapshot(),
                alert_ids=tuple(a.id for a in alerts),
                price=price,
                triggered_at=now,
            )
            self._history.append(record)
            records.append(record)

            for alert in alerts:
                if alert.repeat:
                    alert.status = AlertStatus.ACTIVE

        for record in records:
            logger.info(
                f"Alert triggered: {record.symbol} {record.alert.type.value} "
                f"{record.alert.price} at {price} ({len(record.alert_ids)} alert(s))"
            )

            if self.events is not None:
                self.events.publish(
                    AlertTriggered(
                        symbol=symbol,
                        alert=record.alert,
                        alert_ids=record.alert_ids,
                        price=price,
                        timestamp=now,
                    )
                )

            if self.dispatcher is not None:
                try:
                    await self.dispatcher.send_alert(record.alert)
                except Exception as e:
                    logger.error(f"Dispatch failed for {record.alert.id}: {e}")

        return records

    def clear_triggered(self) -> int:
        """Remove every triggered alert.

        Returns:
            Number of alerts removed.
        """
        triggered = [a.id for a in self._alerts.values() if a.status == AlertStatus.TRIGGERED]
        for alert_id in triggered:
            del self._alerts[alert_id]
        return len(triggered)

    def get_history(self, limit: int | None = None) -> list[TriggerRecord]:
        """Get trigger records, oldest first."""
        history = list(self._history)
        if limit is not None:
            history = history[-limit:] if limit > 0 else []
        return history

    def get_statistics(self) -> dict:
        """Aggregate counts plus the most recent trigger records."""
        by_symbol: dict[str, int] = {}
        for alert in self._alerts.values():
            by_symbol[alert.symbol] = by_symbol.get(alert.symbol, 0) + 1

        return {
            "total": len(self._alerts),
            "active": sum(1 for a in self._alerts.values() if a.status == AlertStatus.ACTIVE),
            "triggered": sum(
                1 for a in self._alerts.values() if a.status == AlertStatus.TRIGGERED
            ),
            "by_symbol": by_symbol,
            "recent_triggers": self.get_history(self.recent_triggers),
        }
