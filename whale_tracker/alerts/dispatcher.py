"""Fan-out of triggered alerts and monitor notifications to every notifier."""

from __future__ import annotations

from ..core.utils import format_price, get_logger, utc_now
from .base import Notifier
from .models import Alert, AlertType, Notification, NotificationKind

logger = get_logger(__name__)


class AlertDispatcher:
    """Delivers one message to every registered notifier.

    A notifier that raises is logged and skipped; the remaining notifiers
    still get the message.

    Usage:
        dispatcher = AlertDispatcher()
        dispatcher.add_notifier(ConsoleNotifier())
        dispatcher.add_notifier(TelegramNotifier(bot_token="...", chat_id="..."))

        await dispatcher.send_alert(alert)
    """

    def __init__(self):
        self._notifiers: list[Notifier] = []
        self._dispatched = 0
        self._failures = 0

    def add_notifier(self, notifier: Notifier) -> None:
        """Register a notifier for the life of the dispatcher."""
        self._notifiers.append(notifier)
        logger.info(f"Added notifier: {notifier.channel.value}")

    @property
    def notifiers(self) -> list[Notifier]:
        return list(self._notifiers)

    @staticmethod
    def alert_direction(alert: Alert) -> str:
        """'above' or 'below': which side of the target the price ended on."""
        if alert.type == AlertType.CROSS:
            if alert.triggered_price is not None and alert.triggered_price >= alert.price:
                return "above"
            return "below"
        return alert.type.value

    @classmethod
    def format_alert_message(cls, alert: Alert) -> str:
        """Render e.g. '📈 BTCUSDT above $50000 (current: $50500)'."""
        glyph = "📈" if cls.alert_direction(alert) == "above" else "📉"
        current = format_price(alert.triggered_price) if alert.triggered_price is not None else "?"
        return (
            f"{glyph} {alert.symbol} {alert.type.value} ${format_price(alert.price)} "
            f"(current: ${current})"
        )

    @classmethod
    def build_notification(cls, alert: Alert) -> Notification:
        """Build the notification for a triggered alert."""
        return Notification(
            kind=NotificationKind.PRICE_ALERT,
            message=cls.format_alert_message(alert),
            symbol=alert.symbol,
            direction=cls.alert_direction(alert),
            data={
                "alert_id": alert.id,
                "target": alert.price,
                "type": alert.type.value,
            },
            timestamp=alert.triggered_at or utc_now(),
        )

    async def send_alert(self, alert: Alert) -> dict[str, bool]:
        """Send a triggered alert to all notifiers.

        Args:
            alert: Alert that fired (read only).

        Returns:
            Mapping of channel name to whether it accepted the message.
        """
        return await self.send_notification(self.build_notification(alert))

    async def send_notification(self, notification: Notification) -> dict[str, bool]:
        """Send any notification to all notifiers.

        Args:
            notification: Notification to send.

        Returns:
            Mapping of channel name to whether it accepted the message.
        """
        self._dispatched += 1
        results: dict[str, bool] = {}

        for notifier in self._notifiers:
            channel = notifier.channel.value
            try:
                results[channel] = await notifier.send(notification)
            except Exception as e:
                self._failures += 1
                logger.error(f"Notifier {channel} failed: {e}")
                results[channel] = False

        return results

    def get_stats(self) -> dict:
        """Get dispatcher statistics."""
        return {
            "notifiers": [n.get_stats() for n in self._notifiers],
            "dispatched": self._dispatched,
            "failures": self._failures,
        }
