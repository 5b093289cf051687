"""Utility functions for Whale Tracker."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import structlog

from .errors import ValidationError


def setup_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ('console' or 'json').
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        stream=sys.stdout,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Configured logger instance.
    """
    return structlog.get_logger(name)


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def to_decimal(value: float | str | int | Decimal) -> Decimal:
    """Convert value to Decimal for exact price comparisons.

    Floats go through ``str`` so 0.1 stays 0.1.

    Raises:
        ValidationError: If the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError(f"Not a number: {value!r}", "price", value) from e


def format_price(price: float | Decimal) -> str:
    """Format price for messages, dropping trailing zeros."""
    text = f"{Decimal(str(price)):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percentage(value: float, decimals: int = 2) -> str:
    """Format an already-scaled percentage (5.0 -> '+5.00%')."""
    return f"{value:+.{decimals}f}%"


def safe_divide(
    numerator: float | Decimal,
    denominator: float | Decimal,
    default: float = 0.0,
) -> float:
    """Safely divide two numbers.

    Args:
        numerator: Top of fraction.
        denominator: Bottom of fraction.
        default: Value to return if denominator is zero.

    Returns:
        Result of division or default.
    """
    if denominator == 0:
        return default
    return float(numerator) / float(denominator)


def base_asset(symbol: str) -> str:
    """Strip the quote currency from a trading pair ('BTCUSDT' -> 'BTC')."""
    symbol = symbol.upper()
    for quote in ("USDT", "BUSD", "USDC", "USD"):
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[: -len(quote)]
    return symbol
