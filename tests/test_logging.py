"""Tests for logging configuration."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from coder_link import logging as coder_link_logging
from coder_link.logging import apply_default_logging, configure_from_settings, configure_logging, get_logger
from coder_link.settings import settings


@pytest.fixture
def reset_structlog() -> Iterator[None]:
    """Restore the import-time logging defaults after a test reconfigures them."""
    yield
    coder_link_logging._close_log_file()
    structlog.reset_defaults()
    apply_default_logging()


class TestConfigureFromSettings:
    """Tests for configure_from_settings."""

    def test_log_file_gets_json_lines(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, reset_structlog: None
    ) -> None:
        """Test a configured log file receives JSON events at the configured level."""
        log_file = tmp_path / "logs" / "coder-link.log"
        monkeypatch.setattr(settings, "log_file", log_file)
        monkeypatch.setattr(settings, "log_level", "INFO")

        configure_from_settings()
        logger = get_logger("coder_link.tests.logging")
        logger.debug("Hidden")
        logger.info("Config written", tool="crush")

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["event"] == "Config written"
        assert event["tool"] == "crush"
        assert event["level"] == "info"


class TestConfigureLogging:
    """Tests for reconfiguring logging."""

    def test_reconfigure_closes_previous_file(self, tmp_path: Path, reset_structlog: None) -> None:
        """Test switching log files closes the old handle and writes only to the new one."""
        first, second = tmp_path / "first.log", tmp_path / "second.log"
        configure_logging(log_level="INFO", log_file=first)
        first_stream = coder_link_logging._log_file_stream
        logger = get_logger("coder_link.tests.logging")
        logger.info("Before")

        configure_logging(log_level="INFO", log_file=second)
        logger.info("After")

        assert first_stream is not None and first_stream.closed
        assert [json.loads(line)["event"] for line in first.read_text().splitlines()] == ["Before"]
        assert [json.loads(line)["event"] for line in second.read_text().splitlines()] == ["After"]

    def test_switching_back_to_stderr_closes_file(self, tmp_path: Path, reset_structlog: None) -> None:
        """Test dropping the log file closes it."""
        configure_logging(log_file=tmp_path / "coder-link.log")
        stream = coder_link_logging._log_file_stream

        configure_logging()

        assert stream is not None and stream.closed
        assert coder_link_logging._log_file_stream is None


class TestDefaultLogging:
    """Tests for the defaults applied before any configuration."""

    def test_filters_below_configured_level(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], reset_structlog: None
    ) -> None:
        """Test debug lines are dropped and warnings go to stderr."""
        monkeypatch.setattr(settings, "log_level", "WARNING")
        structlog.reset_defaults()
        apply_default_logging()

        logger = get_logger("coder_link.tests.logging")
        logger.debug("Registered provider", plan="kimi")
        logger.warning("Rejected tool operation", scope="manager")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Registered provider" not in captured.err
        assert "Rejected tool operation" in captured.err

    def test_keeps_existing_configuration(self, reset_structlog: None) -> None:
        """Test an application's own structlog setup is left alone."""
        processors = [structlog.processors.JSONRenderer()]
        structlog.configure(processors=processors)

        apply_default_logging()

        assert structlog.get_config()["processors"] == processors
