"""Configuration management for Whale Tracker."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator


class GeneralConfig(BaseModel):
    """General application configuration."""

    log_level: str = "INFO"
    log_format: str = "console"


class BinanceConfig(BaseModel):
    """Binance REST API configuration."""

    base_url: str = "https://api.binance.com"
    testnet_url: str = "https://testnet.binance.vision"
    testnet: bool = False
    timeout_seconds: float = 10.0
    recv_window: int = 5000

    @property
    def endpoint(self) -> str:
        """API root for the selected network."""
        return self.testnet_url if self.testnet else self.base_url


class CryptoQuantConfig(BaseModel):
    """CryptoQuant on-chain flow API configuration."""

    base_url: str = "https://api.cryptoquant.com/v1"
    timeout_seconds: float = 10.0
    cache_ttl_seconds: float = 60.0


class TelegramConfig(BaseModel):
    """Telegram notifier configuration."""

    enabled: bool = False
    bot_token: str | None = None
    chat_id: str | None = None
    parse_mode: str = "HTML"
    min_interval_seconds: float = 1.0

    @model_validator(mode="after")
    def _require_destination(self) -> TelegramConfig:
        if self.enabled and not (self.bot_token and self.chat_id):
            raise ValueError("telegram is enabled but bot_token or chat_id is missing")
        return self


class DiscordConfig(BaseModel):
    """Discord webhook notifier configuration."""

    enabled: bool = False
    webhook_url: str | None = None
    username: str = "Whale Tracker"
    min_interval_seconds: float = 1.0

    @model_validator(mode="after")
    def _require_webhook(self) -> DiscordConfig:
        if self.enabled and not self.webhook_url:
            raise ValueError("discord is enabled but webhook_url is missing")
        return self


class AlertsConfig(BaseModel):
    """Alert store configuration."""

    max_alerts: int = Field(default=100, ge=1)
    cooldown_seconds: float = Field(default=3600.0, ge=0)
    history_size: int = Field(default=100, ge=1)
    recent_triggers: int = 10


class PriceMonitorConfig(BaseModel):
    """Price poller configuration."""

    interval_seconds: float = Field(default=5.0, gt=0)
    history_size: int = 100
    short_window_seconds: float = 60.0
    short_window_threshold_pct: float = 2.0
    long_window_seconds: float = 300.0
    long_window_threshold_pct: float = 5.0


class TechnicalConfig(BaseModel):
    """Technical analysis poller configuration."""

    interval_seconds: float = Field(default=60.0, gt=0)
    kline_interval: str = "1h"
    period: int = 100
    rsi: bool = True
    macd: bool = False
    bollinger: bool = False


class AssetThresholds(BaseModel):
    """Flow thresholds for one asset class."""

    whale: float
    critical_inflow: float
    critical_outflow: float


class ExchangeFlowConfig(BaseModel):
    """Exchange flow poller configuration."""

    interval_seconds: float = Field(default=300.0, gt=0)
    exchange: str = "all_exchange"
    window: str = "day"
    history_size: int = 100
    netflow_impact_threshold: float = 1000.0
    thresholds: dict[str, AssetThresholds] = Field(
        default_factory=lambda: {
            "BTC": AssetThresholds(whale=50, critical_inflow=200, critical_outflow=500),
        }
    )
    default_thresholds: AssetThresholds = Field(
        default_factory=lambda: AssetThresholds(
            whale=1000, critical_inflow=5000, critical_outflow=10000
        )
    )

    def thresholds_for(self, asset: str) -> AssetThresholds:
        """Get the thresholds for a base asset ('BTC', 'ETH', ...)."""
        return self.thresholds.get(asset.upper(), self.default_thresholds)


class Config(BaseModel):
    """Main configuration container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    binance: BinanceConfig = Field(default_factory=BinanceConfig)
    cryptoquant: CryptoQuantConfig = Field(default_factory=CryptoQuantConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    price_monitor: PriceMonitorConfig = Field(default_factory=PriceMonitorConfig)
    technical: TechnicalConfig = Field(default_factory=TechnicalConfig)
    exchange_flow: ExchangeFlowConfig = Field(default_factory=ExchangeFlowConfig)

    def apply_credentials(self, credentials: Credentials) -> Config:
        """Return a copy with secrets from the environment filled in.

        A notifier is switched on when its secrets are present, unless the
        config explicitly names other values.
        """
        data = self.model_dump()

        telegram = data["telegram"]
        telegram["bot_token"] = telegram["bot_token"] or credentials.telegram_bot_token
        telegram["chat_id"] = telegram["chat_id"] or credentials.telegram_chat_id
        if credentials.telegram_enabled is not None:
            telegram["enabled"] = credentials.telegram_enabled
        elif telegram["bot_token"]:
            telegram["enabled"] = True

        discord = data["discord"]
        discord["webhook_url"] = discord["webhook_url"] or credentials.discord_webhook_url
        if discord["webhook_url"]:
            discord["enabled"] = True

        return Config(**data)


class Credentials(BaseModel):
    """API credentials loaded from environment."""

    binance_api_key: str | None = None
    binance_api_secret: str | None = None
    cryptoquant_api_key: str | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    telegram_enabled: bool | None = None
    discord_webhook_url: str | None = None

    @classmethod
    def from_env(cls) -> Credentials:
        """Load credentials from environment variables."""
        load_dotenv()
        enabled = os.getenv("TELEGRAM_ENABLED")
        return cls(
            binance_api_key=os.getenv("BINANCE_API_KEY"),
            binance_api_secret=os.getenv("BINANCE_API_SECRET"),
            cryptoquant_api_key=os.getenv("CRYPTOQUANT_API_KEY"),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID"),
            telegram_enabled=None if enabled is None else enabled.lower() != "false",
            discord_webhook_url=os.getenv("DISCORD_WEBHOOK_URL"),
        )

    @property
    def has_binance(self) -> bool:
        """Check if Binance credentials are configured."""
        return bool(self.binance_api_key and self.binance_api_secret)

    @property
    def has_cryptoquant(self) -> bool:
        """Check if CryptoQuant credentials are configured."""
        return self.cryptoquant_api_key is not None


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from JSON file.

    Args:
        config_path: Path to config file. Defaults to configs/default.json.

    Returns:
        Loaded configuration object.
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "configs" / "default.json"

    config_path = Path(config_path)

    if not config_path.exists():
        return Config()

    with open(config_path) as f:
        data: dict[str, Any] = json.load(f)

    return Config(**data)
