"""Exchange flow poller.

Large inflows to exchanges usually precede selling, large outflows usually
mean coins moving to cold storage. The monitor publishes the raw flows plus
whale and critical-level alerts derived from per-asset thresholds.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

from ..adapters.base import ExchangeFlow, FlowDirection, FlowSource
from ..core.config import ExchangeFlowConfig
from ..core.errors import ErrorTracker
from ..core.events import (
    EventChannel,
    FlowAlert,
    FlowUpdate,
    MarketImpact,
    Severity,
    WhaleDetected,
)
from ..core.utils import base_asset, get_logger, utc_now
from ..scheduler import Scheduler
from .base import BaseMonitor

logger = get_logger(__name__)


@dataclass
class FlowSnapshot:
    """Inflow and outflow for one asset at one point in time.

    Attributes:
        symbol: Trading pair the monitor was started with.
        asset: Base asset the flows are reported for.
        inflow: Flow into exchanges.
        outflow: Flow out of exchanges.
        net_balance: Outflow minus inflow; positive means coins leaving exchanges.
        market_impact: Impact implied by the net balance.
        is_fallback: True when the source failed and zeroed flows were used.
    """

    symbol: str
    asset: str
    inflow: ExchangeFlow
    outflow: ExchangeFlow
    net_balance: float = 0.0
    market_impact: MarketImpact = MarketImpact.NEUTRAL
    is_fallback: bool = False
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "symbol": self.symbol,
            "asset": self.asset,
            "inflow": vars(self.inflow.statistics),
            "outflow": vars(self.outflow.statistics),
            "net_balance": self.net_balance,
            "market_impact": self.market_impact.value,
            "is_fallback": self.is_fallback,
            "timestamp": self.timestamp.isoformat(),
        }


class ExchangeFlowMonitor(BaseMonitor[FlowSnapshot]):
    """Polls a FlowSource for exchange inflow/outflow per asset."""

    def __init__(
        self,
        source: FlowSource | None,
        scheduler: Scheduler,
        events: EventChannel | None = None,
        config: ExchangeFlowConfig | None = None,
        error_tracker: ErrorTracker | None = None,
    ):
        self.config = config or ExchangeFlowConfig()
        super().__init__(
            scheduler,
            events=events,
            interval_seconds=self.config.interval_seconds,
            error_tracker=error_tracker,
        )
        self.source = source
        self._history: dict[str, deque[FlowSnapshot]] = {}

    @property
    def name(self) -> str:
        return "flow"

    def determine_market_impact(self, net_balance: float) -> MarketImpact:
        """Outflows dominating is bullish, inflows dominating is bearish."""
        threshold = self.config.netflow_impact_threshold
        if net_balance > threshold:
            return MarketImpact.BULLISH
        if net_balance < -threshold:
            return MarketImpact.BEARISH
        return MarketImpact.NEUTRAL

    def fallback_flows(self, symbol: str) -> FlowSnapshot:
        asset = base_asset(symbol)
        return FlowSnapshot(
            symbol=symbol,
            asset=asset,
            inflow=ExchangeFlow(direction=FlowDirection.INFLOW, symbol=asset),
            outflow=ExchangeFlow(direction=FlowDirection.OUTFLOW, symbol=asset),
            is_fallback=True,
        )

    async def get_flows(self, symbol: str) -> FlowSnapshot:
        """Fetch inflow and outflow concurrently.

        Never raises; failures yield zeroed fallback flows.
        """
        symbol = symbol.upper()
        asset = base_asset(symbol)
        if self.source is None:
            return self.fallback_flows(symbol)

        try:
            inflow, outflow = await asyncio.gather(
                self.source.get_exchange_flow(
                    FlowDirection.INFLOW, asset, self.config.exchange, self.config.window
                ),
                self.source.get_exchange_flow(
                    FlowDirection.OUTFLOW, asset, self.config.exchange, self.config.window
                ),
            )
        except Exception as e:
            self._absorb(e, symbol, "get_flows")
            return self.fallback_flows(symbol)

        net = outflow.statistics.total_24h - inflow.statistics.total_24h
        return FlowSnapshot(
            symbol=symbol,
            asset=asset,
            inflow=inflow,
            outflow=outflow,
            net_balance=net,
            market_impact=self.determine_market_impact(net),
        )

    async def collect(self, symbol: str) -> FlowSnapshot:
        return await self.get_flows(symbol)

    def process(self, symbol: str, data: FlowSnapshot) -> None:
        if symbol not in self._history:
            self._history[symbol] = deque(maxlen=self.config.history_size)
        self._history[symbol].append(data)

        self._publish(FlowUpdate(symbol=symbol, flows=data, timestamp=data.timestamp))

        if data.is_fallback:
            return

        for event in self.detect_whale_movements(data):
            logger.info(f"Whale movement: {event.message}")
            self._publish(event)
        for event in self.check_critical_flows(data):
            logger.warning(f"Critical flow: {event.message}")
            self._publish(event)

    def detect_whale_movements(self, flows: FlowSnapshot) -> list[WhaleDetected]:
        """Whale-sized deposits (bearish) and withdrawals (bullish).

        Withdrawals need twice the whale threshold since cold-storage moves
        are routine.
        """
        threshold = self.config.thresholds_for(flows.asset).whale
        events = []

        inflow_whales = flows.inflow.statistics.whale_volume
        if inflow_whales > threshold:
            events.append(
                WhaleDetected(
                    symbol=flows.symbol,
                    alert_type="WHALE_INFLOW",
                    severity=Severity.HIGH,
                    amount=inflow_whales,
                    impact=MarketImpact.BEARISH,
                    message=f"Large {flows.asset} deposit to exchanges: "
                            f"{inflow_whales:,.2f} {flows.asset}",
                )
            )

        outflow_whales = flows.outflow.statistics.whale_volume
        if outflow_whales > threshold * 2:
            events.append(
                WhaleDetected(
                    symbol=flows.symbol,
                    alert_type="WHALE_OUTFLOW",
                    severity=Severity.MEDIUM,
                    amount=outflow_whales,
                    impact=MarketImpact.BULLISH,
                    message=f"Large {flows.asset} withdrawal from exchanges: "
                            f"{outflow_whales:,.2f} {flows.asset}",
                )
            )

        return events

    def check_critical_flows(self, flows: FlowSnapshot) -> list[FlowAlert]:
        """Total inflow/outflow above the asset's critical levels."""
        thresholds = self.config.thresholds_for(flows.asset)
        events = []

        inflow = flows.inflow.statistics.total_24h
        if inflow > thresholds.critical_inflow:
            events.append(
                FlowAlert(
                    symbol=flows.symbol,
                    alert_type="CRITICAL_INFLOW",
                    severity=Severity.HIGH,
                    amount=inflow,
                    message=f"High {flows.asset} inflow detected: {inflow:,.2f} {flows.asset}",
                )
            )

        outflow = flows.outflow.statistics.total_24h
        if outflow > thresholds.critical_outflow:
            events.append(
                FlowAlert(
                    symbol=flows.symbol,
                    alert_type="CRITICAL_OUTFLOW",
                    severity=Severity.MEDIUM,
                    amount=outflow,
                    message=f"High {flows.asset} outflow detected: {outflow:,.2f} {flows.asset}",
                )
            )

        return events

    def get_latest(self, symbol: str) -> FlowSnapshot | None:
        history = self._history.get(symbol.upper())
        return history[-1] if history else None

    def get_history(self, symbol: str) -> list[FlowSnapshot]:
        return list(self._history.get(symbol.upper(), ()))
