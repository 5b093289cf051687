"""Tests for the error hierarchy and ErrorTracker."""

import pytest

from whale_tracker.core.errors import (
    AlertCapacityError,
    APIError,
    ConfigurationError,
    ErrorSeverity,
    ErrorTracker,
    RecoveryAction,
    ValidationError,
    WhaleTrackerError,
)


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_api_error_details(self):
        """APIError keeps service and status."""
        error = APIError("Bad gateway", "binance", status_code=502)

        assert isinstance(error, WhaleTrackerError)
        assert error.code == "API_ERROR"
        assert error.details["service"] == "binance"
        assert error.status_code == 502

    def test_capacity_error_message(self):
        """Capacity errors name the limit."""
        error = AlertCapacityError(100)

        assert str(error) == "Maximum number of alerts (100) reached"
        assert error.max_alerts == 100

    def test_code_override(self):
        """An explicit code replaces the class default."""
        error = WhaleTrackerError("not ready", code="NOT_INITIALIZED")

        assert error.code == "NOT_INITIALIZED"


class TestClassify:
    """Tests for ErrorTracker.classify()."""

    @pytest.mark.parametrize(
        "error,severity",
        [
            (ConfigurationError("missing key"), ErrorSeverity.CRITICAL),
            (ConnectionError("refused"), ErrorSeverity.CRITICAL),
            (APIError("down", "binance", status_code=503), ErrorSeverity.HIGH),
            (RuntimeError("Invalid API key"), ErrorSeverity.HIGH),
            (APIError("bad symbol", "binance", status_code=400), ErrorSeverity.MEDIUM),
            (ValidationError("bad price"), ErrorSeverity.MEDIUM),
            (RuntimeError("odd"), ErrorSeverity.LOW),
        ],
    )
    def test_classify(self, error, severity):
        """Severity follows error type and status code."""
        assert ErrorTracker().classify(error) == severity


class TestRecovery:
    """Tests for recovery suggestions."""

    def test_network_error_retries(self):
        """Network errors suggest a retry after 5 seconds."""
        recovery = ErrorTracker().suggest_recovery(TimeoutError())

        assert recovery.action == RecoveryAction.RETRY
        assert recovery.delay_seconds == 5.0

    def test_rate_limit_backs_off(self):
        """HTTP 429 suggests a one minute backoff."""
        recovery = ErrorTracker().suggest_recovery(APIError("slow down", "binance", 429))

        assert recovery.action == RecoveryAction.BACKOFF
        assert recovery.delay_seconds == 60.0

    def test_configuration_error_stops(self):
        """Configuration errors suggest stopping."""
        recovery = ErrorTracker().suggest_recovery(ConfigurationError("bad"))

        assert recovery.action == RecoveryAction.STOP

    def test_default_continues(self):
        """Everything else continues."""
        recovery = ErrorTracker().suggest_recovery(ValueError("x"))

        assert recovery.action == RecoveryAction.CONTINUE


class TestHandleError:
    """Tests for ErrorTracker.handle_error()."""

    def test_counts_by_type_and_code(self):
        """Errors are counted per class and code."""
        tracker = ErrorTracker()

        tracker.handle_error(APIError("a", "binance"), {"symbol": "BTCUSDT"})
        tracker.handle_error(APIError("b", "binance"))
        tracker.handle_error(ValueError("c"))

        stats = tracker.get_statistics()
        assert stats["total_errors"] == 3
        assert stats["unique_errors"] == 2
        assert stats["error_counts"]["APIError:API_ERROR"] == 2
        assert stats["error_counts"]["ValueError:unknown"] == 1

    def test_recent_is_bounded(self):
        """Only the most recent errors are kept."""
        tracker = ErrorTracker(max_recent=3)

        for i in range(5):
            tracker.handle_error(ValueError(str(i)))

        assert [r["error"] for r in tracker.get_statistics()["recent_errors"]] == ["2", "3", "4"]

    def test_clear(self):
        """clear() resets statistics."""
        tracker = ErrorTracker()
        tracker.handle_error(ValueError("x"))

        tracker.clear()

        assert tracker.get_statistics()["total_errors"] == 0
