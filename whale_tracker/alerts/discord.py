"""Discord webhook notifier.

Sends notifications to a Discord channel via webhook.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any

import aiohttp

from ..core.config import DiscordConfig
from ..core.errors import ConfigurationError
from ..core.utils import format_price, get_logger
from .base import Notifier, NotifierChannel
from .models import Notification, NotificationKind

logger = get_logger(__name__)


class DiscordNotifier(Notifier):
    """Discord webhook notifier.

    Usage:
        notifier = DiscordNotifier(
            webhook_url="https://discord.com/api/webhooks/...",
            username="Whale Tracker",
        )
        await notifier.initialize()
        await notifier.send(notification)
    """

    def __init__(
        self,
        webhook_url: str | None,
        username: str = "Whale Tracker",
        avatar_url: str | None = None,
        enabled: bool = True,
        min_interval_seconds: float = 1.0,
        **kwargs,
    ):
        """Initialize Discord notifier.

        Args:
            webhook_url: Discord webhook URL.
            username: Bot username to display.
            avatar_url: Bot avatar URL (optional).
            enabled: Whether the notifier should deliver at all.
            min_interval_seconds: Minimum seconds between messages.

        Raises:
            ConfigurationError: If enabled without a webhook URL.
        """
        if enabled and not webhook_url:
            raise ConfigurationError("Discord webhook URL is required", "discord.webhook_url")

        super().__init__(enabled=enabled, min_interval_seconds=min_interval_seconds, **kwargs)
        self.webhook_url = webhook_url
        self.username = username
        self.avatar_url = avatar_url

    @classmethod
    def from_config(cls, config: DiscordConfig, **kwargs) -> DiscordNotifier:
        """Build from the discord config section."""
        return cls(
            webhook_url=config.webhook_url,
            username=config.username,
            enabled=config.enabled,
            min_interval_seconds=config.min_interval_seconds,
            **kwargs,
        )

    @property
    def channel(self) -> NotifierChannel:
        return NotifierChannel.DISCORD

    def _kind_to_color(self, notification: Notification) -> int:
        """Pick the embed color for a notification."""
        if notification.kind == NotificationKind.PRICE_ALERT:
            return 0x2ECC71 if notification.direction == "above" else 0xE74C3C
        colors = {
            NotificationKind.WHALE_DETECTED: 0x9B59B6,  # Purple
            NotificationKind.FLOW_ALERT: 0xF39C12,  # Orange
            NotificationKind.SIGNAL: 0x3498DB,  # Blue
            NotificationKind.MOVEMENT: 0xE67E22,  # Dark orange
        }
        return colors.get(notification.kind, 0x808080)

    def _build_embed(self, notification: Notification) -> dict[str, Any]:
        """Build Discord embed from notification."""
        title = f"{notification.glyph} {notification.symbol or notification.kind.value}"
        embed: dict[str, Any] = {
            "title": title,
            "description": notification.message,
            "color": self._kind_to_color(notification),
            "timestamp": notification.timestamp.isoformat(),
        }

        fields = []
        if notification.price is not None:
            fields.append({"name": "Price", "value": f"${format_price(notification.price)}", "inline": True})
        if notification.amount is not None:
            fields.append({"name": "Amount", "value": f"{notification.amount:,.2f}", "inline": True})
        if notification.impact:
            fields.append({"name": "Impact", "value": notification.impact, "inline": True})

        for key, value in notification.data.items():
            if isinstance(value, float):
                display_value = f"{value:.4f}"
            elif isinstance(value, Decimal):
                display_value = format_price(value)
            else:
                display_value = str(value)
            fields.append({
                "name": key.replace("_", " ").title(),
                "value": display_value,
                "inline": True,
            })

        if fields:
            embed["fields"] = fields[:25]  # Discord limit

        return embed

    def _build_payload(self, notification: Notification) -> dict[str, Any]:
        """Build full webhook payload."""
        payload: dict[str, Any] = {
            "username": self.username,
            "embeds": [self._build_embed(notification)],
        }

        if self.avatar_url:
            payload["avatar_url"] = self.avatar_url

        return payload

    async def _post(self, payload: dict[str, Any]) -> tuple[int, str]:
        """POST to the webhook, returning status and body."""
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.webhook_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=10),
            ) as response:
                return response.status, await response.text()

    async def deliver(self, notification: Notification) -> bool:
        """Send notification to Discord webhook.

        Args:
            notification: Notification to send.

        Returns:
            True if sent successfully.
        """
        try:
            status, text = await self._post(self._build_payload(notification))
        except asyncio.TimeoutError:
            logger.error("Discord webhook timeout")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"Discord error: {e}")
            return False

        if status in (200, 204):
            logger.debug(f"Discord message sent: {notification.kind.value}")
            return True
        if status == 429:
            logger.warning("Discord rate limited")
            return False

        logger.error(f"Discord error {status}: {text}")
        return False
