"""WhaleTracker: one object that wires sources, monitors, alerts and notifiers.

Usage:
    tracker = WhaleTracker(load_config(), Credentials.from_env())
    await tracker.initialize()
    await tracker.start_monitoring("BTCUSDT")
    tracker.add_alert("BTCUSDT", 50000, "above")

    await tracker.run()  # consume events until shutdown()
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Callable

from .adapters import BinanceClient, CryptoQuantClient, FlowSource, PriceSource
from .alerts import (
    Alert,
    AlertDefinition,
    AlertDispatcher,
    AlertStatus,
    AlertStore,
    AlertType,
    ConsoleNotifier,
    DiscordNotifier,
    Notification,
    NotificationKind,
    Notifier,
    TelegramNotifier,
)
from .core.config import Config, Credentials
from .core.errors import ConfigurationError, ErrorTracker, WhaleTrackerError
from .core.events import (
    EventChannel,
    FlowAlert,
    MonitorEvent,
    PriceUpdate,
    SignificantMovement,
    TradingSignal,
    WhaleDetected,
)
from .core.utils import format_percentage, get_logger, utc_now
from .monitors import (
    Analysis,
    ExchangeFlowMonitor,
    FlowSnapshot,
    PriceMonitor,
    TechnicalMonitor,
)
from .scheduler import Scheduler

logger = get_logger(__name__)


class WhaleTracker:
    """Facade over the monitoring pipeline.

    Monitors publish onto one EventChannel. The tracker subscribes once and
    routes each event: price samples go to the alert store, flow, whale,
    signal and movement events become notifications.
    """

    def __init__(
        self,
        config: Config | None = None,
        credentials: Credentials | None = None,
        price_source: PriceSource | None = None,
        flow_source: FlowSource | None = None,
        notifiers: list[Notifier] | None = None,
        console: bool = False,
        clock: Callable | None = None,
    ):
        """Initialize tracker.

        Args:
            config: Application config.
            credentials: API keys and notifier secrets.
            price_source: Market data source; a BinanceClient is created if omitted.
            flow_source: Flow source; a CryptoQuantClient is created if omitted
                and a CryptoQuant key is configured.
            notifiers: Extra notifiers to register.
            console: Also print notifications to stdout.
            clock: Time source for the alert store.
        """
        self.credentials = credentials or Credentials()
        self.config = (config or Config()).apply_credentials(self.credentials)

        self.events = EventChannel()
        self.error_tracker = ErrorTracker()
        self.scheduler = Scheduler(error_callback=self._on_job_error)
        self.dispatcher = AlertDispatcher()

        store_kwargs: dict[str, Any] = {"dispatcher": self.dispatcher, "events": self.events}
        if clock is not None:
            store_kwargs["clock"] = clock
        self.store = AlertStore.from_config(self.config.alerts, **store_kwargs)

        self.price_source = price_source
        self.flow_source = flow_source
        self._owned_clients: list[BinanceClient | CryptoQuantClient] = []
        self._extra_notifiers = list(notifiers or [])
        self._console = console

        self.price_monitor: PriceMonitor | None = None
        self.technical_monitor: TechnicalMonitor | None = None
        self.flow_monitor: ExchangeFlowMonitor | None = None

        self._queue: asyncio.Queue[MonitorEvent] | None = None
        self._stopping = asyncio.Event()
        self._initialized = False
        self._monitored: dict[str, dict[str, bool]] = {}

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _check_initialized(self) -> None:
        if not self._initialized:
            raise WhaleTrackerError("Whale tracker is not initialized", code="NOT_INITIALIZED")

    def _build_notifiers(self) -> list[Notifier]:
        """Create notifiers from config.

        Raises:
            ConfigurationError: If an enabled notifier lacks its destination.
        """
        notifiers: list[Notifier] = []
        if self._console:
            notifiers.append(ConsoleNotifier())
        if self.config.telegram.enabled:
            notifiers.append(TelegramNotifier.from_config(self.config.telegram))
        if self.config.discord.enabled:
            notifiers.append(DiscordNotifier.from_config(self.config.discord))
        notifiers.extend(self._extra_notifiers)
        return notifiers

    async def initialize(self) -> None:
        """Create clients, notifiers and monitors, then start the scheduler.

        Raises:
            ConfigurationError: If an enabled notifier is misconfigured.
        """
        if self._initialized:
            return

        logger.info("Initializing whale tracker")
        notifiers = self._build_notifiers()

        if self.price_source is None:
            client = BinanceClient(self.config.binance, self.credentials)
            await client.connect()
            self._owned_clients.append(client)
            self.price_source = client

        if self.flow_source is None and self.credentials.has_cryptoquant:
            client = CryptoQuantClient(self.config.cryptoquant, self.credentials)
            await client.connect()
            self._owned_clients.append(client)
            self.flow_source = client

        for notifier in notifiers:
            await notifier.initialize()
            self.dispatcher.add_notifier(notifier)

        self.price_monitor = PriceMonitor(
            self.price_source,
            self.scheduler,
            self.events,
            self.config.price_monitor,
            self.error_tracker,
        )
        self.technical_monitor = TechnicalMonitor(
            self.price_source,
            self.scheduler,
            self.events,
            self.config.technical,
            self.error_tracker,
        )
        self.flow_monitor = ExchangeFlowMonitor(
            self.flow_source,
            self.scheduler,
            self.events,
            self.config.exchange_flow,
            self.error_tracker,
        )

        self._queue = self.events.subscribe()
        await self.scheduler.start()
        self._initialized = True
        logger.info(
            "Whale tracker initialized",
            binance=self.price_source is not None,
            cryptoquant=self.flow_source is not None,
            notifiers=len(self.dispatcher.notifiers),
        )

    async def _on_job_error(self, job_name: str, error: Exception) -> None:
        self.error_tracker.handle_error(error, {"job": job_name})

    async def start_monitoring(
        self,
        symbol: str,
        price: bool = True,
        technical: bool = True,
        flow: bool = True,
        interval_seconds: float | None = None,
    ) -> dict[str, bool]:
        """Start the selected monitors for a symbol.

        Flow monitoring only starts when a flow source is available.

        Returns:
            Which monitors are running for the symbol afterwards.
        """
        self._check_initialized()
        symbol = symbol.upper()

        if price:
            await self.price_monitor.start(symbol, interval_seconds)
        if technical:
            await self.technical_monitor.start(symbol, interval_seconds)
        if flow and self.flow_source is not None:
            await self.flow_monitor.start(symbol, interval_seconds)

        state = self._monitor_state(symbol)
        self._monitored[symbol] = state
        logger.info(f"Monitoring {symbol}", **state)
        return state

    def _monitor_state(self, symbol: str) -> dict[str, bool]:
        return {
            "price": self.price_monitor.is_monitoring(symbol),
            "technical": self.technical_monitor.is_monitoring(symbol),
            "flow": self.flow_monitor.is_monitoring(symbol),
        }

    async def stop_monitoring(self, symbol: str) -> bool:
        """Stop every monitor for a symbol.

        Returns:
            True if anything was running.
        """
        self._check_initialized()
        symbol = symbol.upper()

        stopped = False
        for monitor in (self.price_monitor, self.technical_monitor, self.flow_monitor):
            stopped = await monitor.stop(symbol) or stopped

        self._monitored.pop(symbol, None)
        return stopped

    def add_alert(
        self,
        symbol: str,
        price: Decimal | float | str,
        alert_type: AlertType | str = AlertType.ABOVE,
        repeat: bool = False,
        **metadata: Any,
    ) -> Alert:
        """Add a price alert.

        Raises:
            AlertCapacityError: If the store is full.
            ValidationError: On invalid parameters.
        """
        return self.store.add_alert(
            AlertDefinition(
                symbol=symbol, price=price, type=alert_type, repeat=repeat, metadata=metadata
            )
        )

    def remove_alert(self, alert_id: str) -> bool:
        return self.store.remove_alert(alert_id)

    def get_alerts(
        self,
        symbol: str | None = None,
        status: AlertStatus | str | None = None,
        alert_type: AlertType | str | None = None,
    ) -> list[Alert]:
        return self.store.get_alerts(symbol=symbol, status=status, alert_type=alert_type)

    async def analyze_coin(self, symbol: str) -> Analysis:
        """One-off technical analysis."""
        self._check_initialized()
        return await self.technical_monitor.analyze(symbol)

    async def get_exchange_flows(self, symbol: str) -> FlowSnapshot:
        """One-off exchange flow snapshot.

        Raises:
            ConfigurationError: If no flow source is configured.
        """
        self._check_initialized()
        if self.flow_source is None:
            raise ConfigurationError("CryptoQuant API key is not configured", "cryptoquant_api_key")
        return await self.flow_monitor.get_flows(symbol)

    @staticmethod
    def to_notification(event: MonitorEvent) -> Notification | None:
        """Render a monitor event as a notification, if it warrants one."""
        if isinstance(event, WhaleDetected):
            return Notification(
                kind=NotificationKind.WHALE_DETECTED,
                message=event.message,
                symbol=event.symbol,
                amount=event.amount,
                impact=event.impact.value,
                data={"alert_type": event.alert_type, "severity": event.severity.value},
                timestamp=event.timestamp,
            )
        if isinstance(event, FlowAlert):
            return Notification(
                kind=NotificationKind.FLOW_ALERT,
                message=event.message,
                symbol=event.symbol,
                amount=event.amount,
                data={"alert_type": event.alert_type, "severity": event.severity.value},
                timestamp=event.timestamp,
            )
        if isinstance(event, TradingSignal):
            analysis = event.analysis
            data: dict[str, Any] = {"strength": event.strength}
            if analysis.rsi is not None:
                data["rsi"] = analysis.rsi
            return Notification(
                kind=NotificationKind.SIGNAL,
                message=f"{event.signal.value} signal (strength {event.strength:.0%})",
                symbol=event.symbol,
                price=analysis.current_price,
                data=data,
                timestamp=event.timestamp,
            )
        if isinstance(event, SignificantMovement):
            return Notification(
                kind=NotificationKind.MOVEMENT,
                message=(
                    f"{event.movement.value.upper()} {format_percentage(event.change_pct)} "
                    f"in {event.period}"
                ),
                symbol=event.symbol,
                price=event.current_price,
                data={"previous_price": event.previous_price},
                timestamp=event.timestamp,
            )
        return None

    async def route_event(self, event: MonitorEvent) -> None:
        """Handle one event from the channel.

        Fallback prices are not evaluated against alerts.
        """
        if isinstance(event, PriceUpdate):
            if event.is_fallback:
                logger.debug(f"Skipping alert evaluation for fallback price {event.symbol}")
                return
            await self.store.process_price_update(event.symbol, event.price)
            return

        notification = self.to_notification(event)
        if notification is not None:
            await self.dispatcher.send_notification(notification)

    async def drain_events(self) -> int:
        """Route every event already queued, without waiting.

        Returns:
            Number of events routed.
        """
        self._check_initialized()
        count = 0
        while not self._queue.empty():
            await self._route_safely(self._queue.get_nowait())
            count += 1
        return count

    async def _route_safely(self, event: MonitorEvent) -> None:
        try:
            await self.route_event(event)
        except Exception as e:
            self.error_tracker.handle_error(
                e, {"event_type": event.event_type, "symbol": event.symbol}
            )

    async def run(self) -> None:
        """Route events until shutdown() is called."""
        self._check_initialized()
        self._stopping.clear()
        logger.info("Whale tracker running")

        while not self._stopping.is_set():
            get_event = asyncio.ensure_future(self._queue.get())
            stop = asyncio.ensure_future(self._stopping.wait())
            done, _ = await asyncio.wait({get_event, stop}, return_when=asyncio.FIRST_COMPLETED)

            if get_event in done:
                await self._route_safely(get_event.result())
            else:
                get_event.cancel()
            if stop not in done:
                stop.cancel()

    async def shutdown(self) -> None:
        """Stop monitors, flush notifiers and close clients."""
        logger.info("Shutting down whale tracker")
        self._stopping.set()

        if self._initialized:
            for monitor in (self.price_monitor, self.technical_monitor, self.flow_monitor):
                await monitor.stop_all()
            self._monitored.clear()
            await self.scheduler.stop()
            await self.drain_events()

        for notifier in self.dispatcher.notifiers:
            await notifier.close()
        for client in self._owned_clients:
            await client.disconnect()

        if self._queue is not None:
            self.events.unsubscribe(self._queue)
        self._initialized = False
        logger.info("Whale tracker shut down")

    def get_status(self) -> dict[str, Any]:
        """Snapshot of tracker state."""
        status: dict[str, Any] = {
            "initialized": self._initialized,
            "timestamp": utc_now().isoformat(),
            "monitoring": {s: dict(state) for s, state in self._monitored.items()},
            "alerts": self.store.get_statistics(),
            "apis": {
                "binance": self.price_source is not None,
                "cryptoquant": self.flow_source is not None,
            },
            "notifiers": [n.get_queue_status() | {"channel": n.channel.value}
                          for n in self.dispatcher.notifiers],
            "events": self.events.get_stats(),
            "errors": self.error_tracker.get_statistics(),
        }
        if self._initialized:
            status["scheduler"] = self.scheduler.get_status()
        return status
