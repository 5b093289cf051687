"""Technical analysis poller."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from ..adapters.base import PriceSource
from ..core.config import TechnicalConfig
from ..core.errors import ErrorTracker
from ..core.events import AnalysisUpdate, EventChannel, SignalType, TradingSignal
from ..core.utils import get_logger, utc_now
from ..indicators import (
    MACD,
    BollingerBands,
    calculate_bollinger_bands,
    calculate_macd,
    calculate_resistance,
    calculate_rsi,
    calculate_support,
    calculate_volume_change,
    determine_signal,
)
from ..scheduler import Scheduler
from .base import BaseMonitor, reference_price

logger = get_logger(__name__)


@dataclass
class Analysis:
    """Technical snapshot of one symbol.

    Attributes:
        symbol: Trading pair.
        current_price: Latest price.
        change_24h: 24h percent change.
        volume_24h: 24h volume in quote currency (base volume times price).
        rsi: RSI(14), if enabled.
        macd: MACD(12, 26, 9), if enabled and enough candles.
        bollinger: Bollinger(20, 2), if enabled and enough candles.
        volume_change: Percent change of recent vs prior candle volume.
        support: Lowest low of the recent candles.
        resistance: Highest high of the recent candles.
        signal: Scored signal direction.
        signal_strength: 0..1.
        is_fallback: True when the sources failed and defaults were used.
    """

    symbol: str
    current_price: Decimal
    change_24h: float = 0.0
    volume_24h: float = 0.0
    rsi: float | None = None
    macd: MACD | None = None
    bollinger: BollingerBands | None = None
    volume_change: float = 0.0
    support: float | None = None
    resistance: float | None = None
    signal: SignalType = SignalType.NEUTRAL
    signal_strength: float = 0.0
    is_fallback: bool = False
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "symbol": self.symbol,
            "current_price": str(self.current_price),
            "change_24h": self.change_24h,
            "volume_24h": self.volume_24h,
            "rsi": self.rsi,
            "macd": vars(self.macd) if self.macd else None,
            "bollinger": vars(self.bollinger) if self.bollinger else None,
            "volume_change": self.volume_change,
            "support": self.support,
            "resistance": self.resistance,
            "signal": self.signal.value,
            "signal_strength": self.signal_strength,
            "is_fallback": self.is_fallback,
            "timestamp": self.timestamp.isoformat(),
        }


class TechnicalMonitor(BaseMonitor[Analysis]):
    """Periodically scores RSI / MACD / volume into a trading signal.

    Publishes AnalysisUpdate on every tick and TradingSignal whenever the
    signal is not NEUTRAL.
    """

    def __init__(
        self,
        source: PriceSource | None,
        scheduler: Scheduler,
        events: EventChannel | None = None,
        config: TechnicalConfig | None = None,
        error_tracker: ErrorTracker | None = None,
    ):
        self.config = config or TechnicalConfig()
        super().__init__(
            scheduler,
            events=events,
            interval_seconds=self.config.interval_seconds,
            error_tracker=error_tracker,
        )
        self.source = source
        self._history: dict[str, deque[Analysis]] = {}

    @property
    def name(self) -> str:
        return "technical"

    def fallback_analysis(self, symbol: str) -> Analysis:
        latest = self.get_latest(symbol)
        price = latest.current_price if latest else reference_price(symbol)
        return Analysis(symbol=symbol, current_price=price, is_fallback=True)

    async def analyze(self, symbol: str) -> Analysis:
        """Fetch market data and compute indicators.

        Never raises; failures yield a neutral fallback analysis.
        """
        symbol = symbol.upper()
        if self.source is None:
            return self.fallback_analysis(symbol)

        try:
            price, ticker, candles = await asyncio.gather(
                self.source.get_price(symbol),
                self.source.get_24hr_ticker(symbol),
                self.source.get_klines(symbol, self.config.kline_interval, self.config.period),
            )
        except Exception as e:
            self._absorb(e, symbol, "analyze")
            return self.fallback_analysis(symbol)

        closes = [c.close for c in candles]
        volumes = [c.volume for c in candles]

        rsi = calculate_rsi(closes) if self.config.rsi and closes else None
        macd = calculate_macd(closes) if self.config.macd and closes else None
        bollinger = calculate_bollinger_bands(closes) if self.config.bollinger and closes else None
        volume_change = calculate_volume_change(volumes)
        signal, strength = determine_signal(rsi, macd, volume_change)

        return Analysis(
            symbol=symbol,
            current_price=price,
            change_24h=ticker.price_change_percent,
            volume_24h=ticker.volume * float(price),
            rsi=rsi,
            macd=macd,
            bollinger=bollinger,
            volume_change=volume_change,
            support=calculate_support(candles),
            resistance=calculate_resistance(candles),
            signal=signal,
            signal_strength=strength,
        )

    async def collect(self, symbol: str) -> Analysis:
        return await self.analyze(symbol)

    def process(self, symbol: str, data: Analysis) -> None:
        if symbol not in self._history:
            self._history[symbol] = deque(maxlen=100)
        self._history[symbol].append(data)

        self._publish(AnalysisUpdate(symbol=symbol, analysis=data, timestamp=data.timestamp))

        if data.signal != SignalType.NEUTRAL:
            logger.info(
                f"Trading signal: {symbol} {data.signal.value} "
                f"(strength {data.signal_strength:.2f})"
            )
            self._publish(
                TradingSignal(
                    symbol=symbol,
                    signal=data.signal,
                    strength=data.signal_strength,
                    analysis=data,
                    timestamp=data.timestamp,
                )
            )

    def get_latest(self, symbol: str) -> Analysis | None:
        history = self._history.get(symbol.upper())
        return history[-1] if history else None

    def get_history(self, symbol: str) -> list[Analysis]:
        return list(self._history.get(symbol.upper(), ()))
