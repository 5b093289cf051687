"""Price alerts and notification delivery.

This module provides:
- AlertStore: alert lifecycle, cooldown and trigger history
- AlertDispatcher: fan-out to every notifier with failure isolation
- Notifiers for console, Telegram and Discord
"""

from .base import ConsoleNotifier, Notifier, NotifierChannel
from .discord import DiscordNotifier
from .dispatcher import AlertDispatcher
from .models import (
    Alert,
    AlertDefinition,
    AlertStatus,
    AlertType,
    Notification,
    NotificationKind,
    TriggerRecord,
)
from .store import AlertStore
from .telegram import TelegramNotifier

__all__ = [
    "Alert",
    "AlertDefinition",
    "AlertDispatcher",
    "AlertStatus",
    "AlertStore",
    "AlertType",
    "ConsoleNotifier",
    "DiscordNotifier",
    "Notification",
    "NotificationKind",
    "Notifier",
    "NotifierChannel",
    "TelegramNotifier",
    "TriggerRecord",
]
