"""Error taxonomy and error tracking.

Provides:
- WhaleTrackerError hierarchy raised across the package
- ErrorTracker for errors that are logged and absorbed (monitor ticks,
  notifier deliveries) instead of propagated
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class WhaleTrackerError(Exception):
    """Base error for the package.

    Attributes:
        code: Machine-readable error code.
        details: Extra structured context.
        timestamp: When the error was raised.
    """

    code = "TRACKER_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)


class APIError(WhaleTrackerError):
    """An external data source request failed."""

    code = "API_ERROR"

    def __init__(
        self,
        message: str,
        service: str,
        status_code: int | None = None,
        response: Any = None,
    ):
        super().__init__(
            message,
            details={"service": service, "status_code": status_code, "response": response},
        )
        self.service = service
        self.status_code = status_code


class ConfigurationError(WhaleTrackerError):
    """Invalid or missing setting for an enabled feature."""

    code = "CONFIG_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, details={"field": field})
        self.field = field


class ValidationError(WhaleTrackerError):
    """Caller supplied an invalid value."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message, details={"field": field, "value": value})
        self.field = field
        self.value = value


class AlertCapacityError(WhaleTrackerError):
    """The alert store already holds its maximum number of alerts."""

    code = "CAPACITY_ERROR"

    def __init__(self, max_alerts: int):
        super().__init__(
            f"Maximum number of alerts ({max_alerts}) reached",
            details={"max_alerts": max_alerts},
        )
        self.max_alerts = max_alerts


class DeliveryError(WhaleTrackerError):
    """A notifier could not deliver a message."""

    code = "DELIVERY_ERROR"

    def __init__(self, message: str, channel: str):
        super().__init__(message, details={"channel": channel})
        self.channel = channel


class ErrorSeverity(str, Enum):
    """How urgently an absorbed error needs attention."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryAction(str, Enum):
    """Suggested reaction to an error."""

    CONTINUE = "continue"
    RETRY = "retry"
    BACKOFF = "backoff"
    STOP = "stop"


@dataclass
class Recovery:
    """Recovery suggestion returned by ErrorTracker.handle_error()."""

    action: RecoveryAction
    message: str
    delay_seconds: float | None = None


@dataclass
class ErrorRecord:
    """One tracked error occurrence."""

    error: BaseException
    severity: ErrorSeverity
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    count: int = 1


_CONNECTION_ERRORS = (ConnectionError, TimeoutError)


class ErrorTracker:
    """Counts, classifies and logs errors that are absorbed rather than raised.

    Usage:
        tracker = ErrorTracker()
        try:
            price = await source.get_price(symbol)
        except Exception as e:
            recovery = tracker.handle_error(e, {"symbol": symbol})
    """

    def __init__(self, max_recent: int = 10):
        self._counts: dict[str, int] = {}
        self._recent: list[ErrorRecord] = []
        self._max_recent = max_recent

    @staticmethod
    def _key(error: BaseException) -> str:
        code = getattr(error, "code", None) or "unknown"
        return f"{type(error).__name__}:{code}"

    def classify(self, error: BaseException) -> ErrorSeverity:
        """Determine error severity."""
        if isinstance(error, (ConfigurationError, *_CONNECTION_ERRORS)):
            return ErrorSeverity.CRITICAL

        status = getattr(error, "status_code", None)
        if isinstance(error, APIError) and status is not None and status >= 500:
            return ErrorSeverity.HIGH
        if "api key" in str(error).lower():
            return ErrorSeverity.HIGH

        if isinstance(error, APIError) and status is not None and status >= 400:
            return ErrorSeverity.MEDIUM
        if isinstance(error, ValidationError):
            return ErrorSeverity.MEDIUM

        return ErrorSeverity.LOW

    def suggest_recovery(self, error: BaseException) -> Recovery:
        """Suggest how the caller should react."""
        if isinstance(error, _CONNECTION_ERRORS):
            return Recovery(RecoveryAction.RETRY, "Network error - will retry connection", 5.0)
        if "rate limit" in str(error).lower() or getattr(error, "status_code", None) == 429:
            return Recovery(RecoveryAction.BACKOFF, "Rate limit hit - backing off", 60.0)
        if isinstance(error, ConfigurationError):
            return Recovery(RecoveryAction.STOP, "Configuration error - please check settings")
        return Recovery(RecoveryAction.CONTINUE, "Error logged - continuing operation")

    def handle_error(
        self,
        error: BaseException,
        context: dict[str, Any] | None = None,
    ) -> Recovery:
        """Track and log an error, returning a recovery suggestion.

        Args:
            error: The absorbed exception.
            context: Extra fields to attach to the log line.

        Returns:
            Recovery suggestion.
        """
        context = context or {}
        severity = self.classify(error)

        key = self._key(error)
        self._counts[key] = self._counts.get(key, 0) + 1

        self._recent.append(
            ErrorRecord(error=error, severity=severity, context=context, count=self._counts[key])
        )
        if len(self._recent) > self._max_recent:
            self._recent = self._recent[-self._max_recent:]

        log = {
            ErrorSeverity.CRITICAL: logger.critical,
            ErrorSeverity.HIGH: logger.error,
            ErrorSeverity.MEDIUM: logger.warning,
            ErrorSeverity.LOW: logger.info,
        }[severity]
        log(
            "error_absorbed",
            error=str(error),
            error_type=type(error).__name__,
            severity=severity.value,
            **context,
        )

        return self.suggest_recovery(error)

    def get_statistics(self) -> dict:
        """Get error statistics."""
        return {
            "total_errors": sum(self._counts.values()),
            "unique_errors": len(self._counts),
            "error_counts": dict(self._counts),
            "recent_errors": [
                {
                    "error": str(r.error),
                    "severity": r.severity.value,
                    "timestamp": r.timestamp.isoformat(),
                    "count": r.count,
                }
                for r in self._recent[-5:]
            ],
        }

    def clear(self) -> None:
        """Clear error history."""
        self._counts.clear()
        self._recent.clear()
