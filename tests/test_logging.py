"""Tests for cfgbind logging setup."""

import json

import structlog

from cfgbind.logging import LogContext, configure_logging, get_logger


class TestConfigureLogging:
    def test_json_output_to_stderr(self, capsys):
        configure_logging(level="INFO", json_format=True, service="demo", add_timestamp=False)
        try:
            get_logger("test").info("config_file_used", path="/tmp/.demo.yaml")
        finally:
            structlog.reset_defaults()

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "config_file_used"
        assert event["path"] == "/tmp/.demo.yaml"
        assert event["level"] == "info"
        assert event["service.name"] == "demo"

    def test_level_filters(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        try:
            get_logger("test").debug("record_resolved")
        finally:
            structlog.reset_defaults()
        assert "record_resolved" not in capsys.readouterr().err

    def test_log_context(self, capsys):
        configure_logging(level="INFO", json_format=True, add_timestamp=False)
        try:
            with LogContext(command="child2"):
                get_logger("test").info("inside")
            get_logger("test").info("outside")
        finally:
            structlog.reset_defaults()

        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        assert lines[0]["command"] == "child2"
        assert "command" not in lines[1]
