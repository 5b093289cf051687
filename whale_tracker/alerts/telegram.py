"""Telegram bot notifier.

Sends notifications to a Telegram chat via Bot API.
"""

from __future__ import annotations

import asyncio
import html
from typing import Any

import aiohttp

from ..core.config import TelegramConfig
from ..core.errors import ConfigurationError
from ..core.utils import get_logger
from .base import Notifier, NotifierChannel
from .models import Notification

logger = get_logger(__name__)


class TelegramNotifier(Notifier):
    """Telegram bot notifier.

    Usage:
        notifier = TelegramNotifier(
            bot_token="123456:ABC-DEF...",
            chat_id="-100123456789",
        )
        await notifier.initialize()
        await notifier.send(notification)

    To get your chat_id:
        1. Create a bot via @BotFather
        2. Add the bot to your chat/channel
        3. Send a message to the bot
        4. Visit https://api.telegram.org/bot<token>/getUpdates
        5. Find the chat.id in the response
    """

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str | None,
        chat_id: str | int | None,
        enabled: bool = True,
        parse_mode: str = "HTML",
        min_interval_seconds: float = 1.0,
        verify_on_start: bool = False,
        **kwargs,
    ):
        """Initialize Telegram notifier.

        Args:
            bot_token: Telegram bot token from BotFather.
            chat_id: Target chat/channel ID.
            enabled: Whether the notifier should deliver at all.
            parse_mode: Message parse mode (HTML or MarkdownV2).
            min_interval_seconds: Minimum seconds between messages.
            verify_on_start: Call getMe during initialize().

        Raises:
            ConfigurationError: If enabled without a token or chat id.
        """
        if enabled and not bot_token:
            raise ConfigurationError("Telegram bot token is required", "telegram.bot_token")
        if enabled and not chat_id:
            raise ConfigurationError("Telegram chat id is required", "telegram.chat_id")

        super().__init__(enabled=enabled, min_interval_seconds=min_interval_seconds, **kwargs)
        self.bot_token = bot_token
        self.chat_id = str(chat_id) if chat_id is not None else None
        self.parse_mode = parse_mode
        self.verify_on_start = verify_on_start

    @classmethod
    def from_config(cls, config: TelegramConfig, **kwargs) -> TelegramNotifier:
        """Build from the telegram config section."""
        return cls(
            bot_token=config.bot_token,
            chat_id=config.chat_id,
            enabled=config.enabled,
            parse_mode=config.parse_mode,
            min_interval_seconds=config.min_interval_seconds,
            **kwargs,
        )

    @property
    def channel(self) -> NotifierChannel:
        return NotifierChannel.TELEGRAM

    def _format_html(self, notification: Notification) -> str:
        """Format notification as HTML for Telegram."""
        lines = [html.escape(line) for line in notification.format_lines()]
        if lines:
            lines[0] = f"<b>{notification.glyph} {lines[0]}</b>"
        else:
            lines = [notification.glyph]

        lines.append("")
        lines.append(f"<i>⏰ {notification.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}</i>")
        return "\n".join(lines)

    def _format_markdown(self, notification: Notification) -> str:
        """Format notification as MarkdownV2 for Telegram."""
        lines = [self._escape_markdown(line) for line in notification.format_lines()]
        if lines:
            lines[0] = f"*{notification.glyph} {lines[0]}*"
        else:
            lines = [notification.glyph]

        stamp = self._escape_markdown(notification.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"))
        lines.append("")
        lines.append(f"_⏰ {stamp}_")
        return "\n".join(lines)

    def _escape_markdown(self, text: str) -> str:
        """Escape Markdown special characters."""
        chars = ['_', '*', '[', ']', '(', ')', '~', '`', '>', '#', '+', '-', '=', '|', '{', '}', '.', '!']
        for char in chars:
            text = text.replace(char, f'\\{char}')
        return text

    def format_message(self, notification: Notification) -> str:
        """Render a notification in the configured parse mode."""
        if self.parse_mode == "HTML":
            return self._format_html(notification)
        return self._format_markdown(notification)

    def _get_api_url(self, method: str) -> str:
        """Get Telegram API URL for method."""
        return f"{self.BASE_URL}/bot{self.bot_token}/{method}"

    async def _post(self, method: str, payload: dict[str, Any] | None = None) -> dict:
        """Call a Bot API method and return the decoded response."""
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self._get_api_url(method),
                json=payload or {},
                timeout=aiohttp.ClientTimeout(total=10),
            ) as response:
                return await response.json()

    async def _connect(self) -> bool:
        if self.verify_on_start:
            return await self.test_connection()
        return True

    async def deliver(self, notification: Notification) -> bool:
        """Send notification to Telegram.

        Args:
            notification: Notification to send.

        Returns:
            True if sent successfully.
        """
        payload = {
            "chat_id": self.chat_id,
            "text": self.format_message(notification),
            "parse_mode": self.parse_mode,
            "disable_web_page_preview": True,
        }

        try:
            data = await self._post("sendMessage", payload)
        except asyncio.TimeoutError:
            logger.error("Telegram API timeout")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"Telegram error: {e}")
            return False

        if data.get("ok"):
            logger.debug(f"Telegram message sent: {notification.kind.value}")
            return True

        logger.error(f"Telegram error: {data.get('description', 'Unknown error')}")
        return False

    async def test_connection(self) -> bool:
        """Test bot connection by getting bot info.

        Returns:
            True if connection successful.
        """
        try:
            data = await self._post("getMe")
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            logger.error(f"Telegram connection error: {e}")
            return False

        if data.get("ok"):
            bot_info = data.get("result", {})
            logger.info(f"Telegram bot connected: @{bot_info.get('username')}")
            return True

        logger.error(f"Telegram auth failed: {data.get('description')}")
        return False
