"""Tests for the WhaleTracker facade and event routing."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import RecordingNotifier
from whale_tracker import WhaleTracker
from whale_tracker.alerts.models import AlertStatus, AlertType, NotificationKind
from whale_tracker.core.errors import ConfigurationError, WhaleTrackerError
from whale_tracker.core.events import (
    FlowAlert,
    MarketImpact,
    MonitoringStarted,
    MovementType,
    PriceUpdate,
    Severity,
    SignalType,
    SignificantMovement,
    TradingSignal,
    WhaleDetected,
)
from whale_tracker.monitors import Analysis


def make_tracker(price="50500", **kwargs):
    source = MagicMock()
    source.get_price = AsyncMock(return_value=Decimal(price))
    notifier = RecordingNotifier(min_interval_seconds=0)
    tracker = WhaleTracker(price_source=source, notifiers=[notifier], **kwargs)
    return tracker, notifier


class TestLifecycle:
    """Tests for initialize/shutdown."""

    @pytest.mark.asyncio
    async def test_requires_initialize(self):
        """Monitoring before initialize() is an error."""
        tracker, _ = make_tracker()

        with pytest.raises(WhaleTrackerError) as exc_info:
            await tracker.start_monitoring("BTCUSDT")

        assert exc_info.value.code == "NOT_INITIALIZED"

    @pytest.mark.asyncio
    async def test_initialize_and_shutdown(self):
        """Initialize wires monitors; shutdown stops everything."""
        tracker, notifier = make_tracker()

        await tracker.initialize()
        state = await tracker.start_monitoring("btcusdt", interval_seconds=60)

        assert tracker.is_initialized
        assert state == {"price": True, "technical": True, "flow": False}
        assert notifier.is_ready()
        assert tracker.scheduler.has_job("price:BTCUSDT")

        await tracker.shutdown()

        assert tracker.is_initialized is False
        assert tracker.scheduler.is_running is False
        assert tracker.scheduler.get_all_jobs() == []
        assert notifier.is_ready() is False

    @pytest.mark.asyncio
    async def test_stop_monitoring(self):
        """Stopping reports whether anything was running."""
        tracker, _ = make_tracker()
        await tracker.initialize()
        await tracker.start_monitoring("ETHUSDT", technical=False, interval_seconds=60)

        assert await tracker.stop_monitoring("ETHUSDT") is True
        assert await tracker.stop_monitoring("ETHUSDT") is False
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_flows_need_cryptoquant(self):
        """Flow queries without a flow source are a configuration error."""
        tracker, _ = make_tracker()
        await tracker.initialize()

        with pytest.raises(ConfigurationError):
            await tracker.get_exchange_flows("BTCUSDT")
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_status(self):
        """Status reports APIs, alerts and notifiers."""
        tracker, _ = make_tracker()
        tracker.add_alert("BTCUSDT", 60000)
        await tracker.initialize()

        status = tracker.get_status()

        assert status["initialized"] is True
        assert status["apis"] == {"binance": True, "cryptoquant": False}
        assert status["alerts"]["total"] == 1
        assert status["notifiers"][0]["channel"] == "console"
        assert "scheduler" in status
        await tracker.shutdown()

    def test_alert_type_filter(self):
        """Alerts are added and queried by alert_type."""
        tracker, _ = make_tracker()
        tracker.add_alert("BTCUSDT", 60000, alert_type="above")
        tracker.add_alert("BTCUSDT", 40000, alert_type=AlertType.BELOW)

        (below,) = tracker.get_alerts(alert_type="below")
        assert below.price == Decimal("40000")
        assert len(tracker.get_alerts(symbol="btcusdt")) == 2

    @pytest.mark.asyncio
    async def test_shutdown_stops_all_monitors(self):
        """Shutdown stops every monitored symbol through each monitor."""
        tracker, _ = make_tracker()
        await tracker.initialize()
        await tracker.start_monitoring("BTCUSDT", interval_seconds=60)
        await tracker.start_monitoring("ETHUSDT", technical=False, interval_seconds=60)

        await tracker.shutdown()

        assert tracker.price_monitor.active_symbols == []
        assert tracker.technical_monitor.active_symbols == []
        assert tracker.get_status()["monitoring"] == {}


class TestRouting:
    """Tests for event routing."""

    @pytest.mark.asyncio
    async def test_price_update_triggers_alert(self, wall_clock):
        """A live price above target fires the alert and notifies."""
        tracker, notifier = make_tracker(clock=wall_clock)
        alert = tracker.add_alert("BTCUSDT", 50000, "above")
        await tracker.initialize()

        await tracker.route_event(PriceUpdate(symbol="BTCUSDT", price=Decimal("50500")))
        await notifier.flush()

        stored = tracker.store.get_alert(alert.id)
        assert stored.status == AlertStatus.TRIGGERED
        assert stored.triggered_at == wall_clock.now
        (_, notification), = notifier.delivered
        assert notification.message == "📈 BTCUSDT above $50000 (current: $50500)"
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_fallback_price_is_not_evaluated(self):
        """Fallback prices never trigger alerts."""
        tracker, notifier = make_tracker()
        alert = tracker.add_alert("BTCUSDT", 40000, "above")
        await tracker.initialize()

        await tracker.route_event(
            PriceUpdate(symbol="BTCUSDT", price=Decimal("50000"), is_fallback=True)
        )

        assert tracker.store.get_alert(alert.id).status == AlertStatus.ACTIVE
        assert notifier.delivered == []
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_tick_to_notification(self):
        """A tick flows through the channel into the store, which publishes AlertTriggered."""
        tracker, notifier = make_tracker(price="2900")
        alert = tracker.add_alert("ETHUSDT", 3000, "below")
        await tracker.initialize()
        await tracker.start_monitoring("ETHUSDT", technical=False, interval_seconds=60)

        await tracker.price_monitor.tick("ETHUSDT")
        routed = await tracker.drain_events()
        await notifier.flush()

        assert routed == 3
        assert tracker.store.get_alert(alert.id).status == AlertStatus.TRIGGERED
        assert notifier.delivered[0][1].message == "📉 ETHUSDT below $3000 (current: $2900)"
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_recovery_after_fallback_sends_no_movement(self):
        """A live price after an outage does not notify a movement from the reference price."""
        tracker, notifier = make_tracker()
        tracker.price_source.get_price = AsyncMock(
            side_effect=[RuntimeError("down"), RuntimeError("down"), Decimal("95000")]
        )
        await tracker.initialize()

        for _ in range(3):
            await tracker.price_monitor.tick("BTCUSDT")
        await tracker.drain_events()
        await notifier.flush()

        kinds = [n.kind for _, n in notifier.delivered]
        assert NotificationKind.MOVEMENT not in kinds
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_whale_event_is_notified(self):
        """Whale events become whale notifications."""
        tracker, notifier = make_tracker()
        await tracker.initialize()

        await tracker.route_event(
            WhaleDetected(
                symbol="BTCUSDT",
                alert_type="WHALE_INFLOW",
                severity=Severity.HIGH,
                amount=75.0,
                impact=MarketImpact.BEARISH,
                message="Large BTC deposit to exchanges: 75.00 BTC",
            )
        )
        await notifier.flush()

        (_, notification), = notifier.delivered
        assert notification.kind == NotificationKind.WHALE_DETECTED
        assert notification.impact == "BEARISH"
        assert notification.data["severity"] == "high"
        await tracker.shutdown()

    @pytest.mark.asyncio
    async def test_route_errors_are_absorbed(self):
        """A failing route is counted, not raised."""
        tracker, _ = make_tracker()
        await tracker.initialize()
        tracker.dispatcher.send_notification = AsyncMock(side_effect=RuntimeError("boom"))
        tracker._queue.put_nowait(
            FlowAlert(
                symbol="BTCUSDT",
                alert_type="CRITICAL_INFLOW",
                severity=Severity.HIGH,
                amount=250.0,
                message="High BTC inflow detected: 250.00 BTC",
            )
        )

        assert await tracker.drain_events() == 1
        assert tracker.error_tracker.get_statistics()["total_errors"] == 1
        await tracker.shutdown()


class TestToNotification:
    """Tests for rendering events."""

    def test_signal(self):
        """Signals carry strength and RSI."""
        analysis = Analysis(symbol="BTCUSDT", current_price=Decimal("50000"), rsi=25.0)
        event = TradingSignal(
            symbol="BTCUSDT", signal=SignalType.BULLISH, strength=0.75, analysis=analysis
        )

        n = WhaleTracker.to_notification(event)

        assert n.kind == NotificationKind.SIGNAL
        assert n.message == "BULLISH signal (strength 75%)"
        assert n.price == Decimal("50000")
        assert n.data == {"strength": 0.75, "rsi": 25.0}

    def test_movement(self):
        """Movements render direction, percent and period."""
        event = SignificantMovement(
            symbol="BTCUSDT",
            current_price=Decimal("103"),
            previous_price=Decimal("100"),
            change_pct=3.0,
            period="1m",
            movement=MovementType.PUMP,
        )

        n = WhaleTracker.to_notification(event)

        assert n.kind == NotificationKind.MOVEMENT
        assert n.message == "PUMP +3.00% in 1m"

    def test_lifecycle_events_are_silent(self):
        """Start/stop events produce no notification."""
        assert WhaleTracker.to_notification(MonitoringStarted(symbol="BTCUSDT", monitor="price")) is None
