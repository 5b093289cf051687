"""Base notifier infrastructure.

Provides:
- Notifier abstract base class with a serialized, rate-limited send queue
- ConsoleNotifier that prints to stdout
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections import deque
from enum import Enum
from typing import Awaitable, Callable

from ..core.utils import get_logger
from .models import Notification, NotificationKind

logger = get_logger(__name__)


class NotifierChannel(Enum):
    """Supported notification channels."""

    CONSOLE = "console"
    TELEGRAM = "telegram"
    DISCORD = "discord"


class Notifier(ABC):
    """Abstract base class for notification channels.

    send() only enqueues. A single drain task delivers queued notifications
    one at a time, waiting until `min_interval_seconds` have passed since the
    previous attempt. A failed delivery is logged and skipped; it is never
    retried.

    Subclasses must implement channel and deliver().
    """

    def __init__(
        self,
        enabled: bool = True,
        min_interval_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize notifier.

        Args:
            enabled: Disabled notifiers reject every send().
            min_interval_seconds: Minimum seconds between delivery attempts.
            clock: Monotonic time source in seconds.
            sleep: Coroutine used to wait out the interval.
        """
        self.enabled = enabled
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep

        self._queue: deque[Notification] = deque()
        self._drain_task: asyncio.Task | None = None
        self._ready = False
        self._last_send_time: float | None = None

        self._sent = 0
        self._failed = 0
        self._rejected = 0

    @property
    @abstractmethod
    def channel(self) -> NotifierChannel:
        """Get the channel type."""
        pass

    @abstractmethod
    async def deliver(self, notification: Notification) -> bool:
        """Deliver one notification to the external channel.

        Args:
            notification: Notification to deliver.

        Returns:
            True if delivered successfully.
        """
        pass

    async def _connect(self) -> bool:
        """Channel-specific setup run by initialize()."""
        return True

    async def _disconnect(self) -> None:
        """Channel-specific teardown run by close()."""

    async def initialize(self) -> bool:
        """Prepare the notifier.

        Returns:
            True if the notifier is ready to accept notifications.
        """
        if not self.enabled:
            logger.info(f"{self.channel.value} notifier disabled")
            return False

        try:
            self._ready = await self._connect()
        except Exception as e:
            logger.error(f"Failed to initialize {self.channel.value} notifier: {e}")
            self._ready = False

        if not self._ready:
            self.enabled = False

        return self._ready

    def is_ready(self) -> bool:
        """Whether initialization completed and the notifier is enabled."""
        return self.enabled and self._ready

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    async def send(self, notification: Notification) -> bool:
        """Queue a notification for delivery.

        Returns:
            True if queued, False if the notifier is disabled or not ready.
        """
        if not self.is_ready():
            self._rejected += 1
            return False

        self._queue.append(notification)

        if not self.is_draining:
            self._drain_task = asyncio.create_task(self._drain())

        return True

    async def _drain(self) -> None:
        """Deliver queued notifications in order, respecting the interval."""
        while self._queue:
            notification = self._queue.popleft()

            if self._last_send_time is not None:
                wait = self._last_send_time + self.min_interval_seconds - self._clock()
                if wait > 0:
                    await self._sleep(wait)

            try:
                delivered = await self.deliver(notification)
            except Exception as e:
                logger.error(f"{self.channel.value} delivery failed: {e}")
                delivered = False

            self._last_send_time = self._clock()

            if delivered:
                self._sent += 1
            else:
                self._failed += 1

    async def flush(self) -> None:
        """Wait until the queue is empty."""
        while self.is_draining:
            await self._drain_task

    async def close(self) -> None:
        """Deliver what is queued, then stop accepting notifications."""
        await self.flush()
        self._ready = False
        await self._disconnect()

    async def send_test(self) -> bool:
        """Queue a test notification."""
        return await self.send(
            Notification(
                kind=NotificationKind.TEST,
                message="Test notification from Whale Tracker",
            )
        )

    def get_queue_status(self) -> dict:
        """Get queue state."""
        return {
            "queued": len(self._queue),
            "processing": self.is_draining,
            "enabled": self.enabled,
            "ready": self.is_ready(),
        }

    def get_stats(self) -> dict:
        """Get notifier statistics."""
        return {
            "channel": self.channel.value,
            "min_interval_seconds": self.min_interval_seconds,
            "sent": self._sent,
            "failed": self._failed,
            "rejected": self._rejected,
            **self.get_queue_status(),
        }


class ConsoleNotifier(Notifier):
    """Notifier that prints notifications to stdout."""

    def __init__(self, min_interval_seconds: float = 0.0, **kwargs):
        super().__init__(min_interval_seconds=min_interval_seconds, **kwargs)

    @property
    def channel(self) -> NotifierChannel:
        return NotifierChannel.CONSOLE

    async def deliver(self, notification: Notification) -> bool:
        """Print notification to console."""
        print(notification.format_text())
        print("-" * 50)
        return True
