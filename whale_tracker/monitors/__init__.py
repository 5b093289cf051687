"""Timer-driven monitors that publish events onto an EventChannel."""

from .base import BaseMonitor, MonitorStats, reference_price
from .flow import ExchangeFlowMonitor, FlowSnapshot
from .price import PriceMonitor, PriceSample
from .technical import Analysis, TechnicalMonitor

__all__ = [
    "Analysis",
    "BaseMonitor",
    "ExchangeFlowMonitor",
    "FlowSnapshot",
    "MonitorStats",
    "PriceMonitor",
    "PriceSample",
    "TechnicalMonitor",
    "reference_price",
]
