"""Core utilities, configuration, errors and events."""

from .config import Config, Credentials, load_config
from .errors import (
    AlertCapacityError,
    APIError,
    ConfigurationError,
    DeliveryError,
    ErrorTracker,
    ValidationError,
    WhaleTrackerError,
)
from .events import EventChannel
from .utils import get_logger, setup_logging

__all__ = [
    "AlertCapacityError",
    "APIError",
    "Config",
    "ConfigurationError",
    "Credentials",
    "DeliveryError",
    "ErrorTracker",
    "EventChannel",
    "ValidationError",
    "WhaleTrackerError",
    "get_logger",
    "load_config",
    "setup_logging",
]
