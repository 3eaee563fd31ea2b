"""Tests for structured logging."""

import json

import structlog

from subwatch.observability.context import clear_correlation_id, set_correlation_id
from subwatch.observability.logging import (
    add_correlation_id_processor,
    configure_logging,
    get_logger,
)


class TestAddCorrelationIdProcessor:
    """Tests for add_correlation_id_processor."""

    def test_adds_correlation_id_when_set(self):
        """Should add correlation_id to event dict when set."""
        set_correlation_id("test-corr-id")
        event_dict = {"event": "test_event"}

        result = add_correlation_id_processor(None, "info", event_dict)

        assert result["correlation_id"] == "test-corr-id"
        clear_correlation_id()

    def test_adds_none_marker_when_not_set(self):
        """Should add 'none' as correlation_id when not set."""
        clear_correlation_id()

        result = add_correlation_id_processor(None, "info", {"event": "test_event"})

        assert result["correlation_id"] == "none"

    def test_preserves_existing_event_dict_fields(self):
        """Should preserve other fields in event dict."""
        clear_correlation_id()
        event_dict = {"event": "test", "notification_id": "n1", "count": 42}

        result = add_correlation_id_processor(None, "info", event_dict)

        assert result["notification_id"] == "n1"
        assert result["count"] == 42


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def teardown_method(self):
        structlog.reset_defaults()

    def test_json_output(self, capsys):
        """Should emit JSON lines with level and correlation ID."""
        configure_logging(level="DEBUG", json_output=True, add_timestamp=False)
        set_correlation_id("sweep-42")

        structlog.get_logger().info("notification_sent", notification_id="n1")
        clear_correlation_id()

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "notification_sent"
        assert entry["notification_id"] == "n1"
        assert entry["correlation_id"] == "sweep-42"
        assert entry["level"] == "info"
        assert "timestamp" not in entry

    def test_respects_log_level(self, capsys):
        """Should filter entries below the configured level."""
        configure_logging(level="WARNING", json_output=True)

        structlog.get_logger().info("hidden_event")
        structlog.get_logger().warning("visible_event")

        err = capsys.readouterr().err
        assert "hidden_event" not in err
        assert "visible_event" in err

    def test_console_output(self, capsys):
        """Should render human-readable output when JSON is disabled."""
        configure_logging(level="INFO", json_output=False)

        structlog.get_logger().info("console_event")

        assert "console_event" in capsys.readouterr().err


class TestGetLogger:
    """Tests for get_logger function."""

    def teardown_method(self):
        structlog.reset_defaults()

    def test_binds_component(self, capsys):
        """Should include the component in every entry."""
        configure_logging(level="DEBUG", json_output=True)

        get_logger("notification_scheduler", worker="w1").info("tick")

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["component"] == "notification_scheduler"
        assert entry["worker"] == "w1"

    def test_without_component(self):
        """Should return a usable logger without context."""
        logger = get_logger()

        assert hasattr(logger, "info")
        assert hasattr(logger, "error")
