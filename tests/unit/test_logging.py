"""Unit tests for structlog configuration."""

import json

import pytest
import structlog

from logseq_bridge.utils import logging as bridge_logging


@pytest.fixture
def restore_structlog():
    """Leave structlog in its import-time state for the tests that follow."""
    yield
    structlog.reset_defaults()
    bridge_logging.configure_library_default()


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_writes_json_lines_to_log_dir(self, tmp_path, restore_structlog):
        """Test that events land in the log file as JSON."""
        log_file = bridge_logging.configure_logging()

        bridge_logging.get_logger("tests").info("stream_completed", page="Inbox")

        assert log_file == tmp_path / "logs" / "logseq-bridge.log"
        entry = json.loads(log_file.read_text().splitlines()[-1])
        assert entry["event"] == "stream_completed"
        assert entry["page"] == "Inbox"
        assert entry["level"] == "info"

    def test_reconfiguring_closes_previous_file(self, restore_structlog):
        """Test that repeated configuration does not leak file handles."""
        bridge_logging.configure_logging()
        first = bridge_logging._log_file

        bridge_logging.configure_logging("DEBUG")

        assert first.closed
        assert not bridge_logging._log_file.closed

    def test_invalid_level_falls_back_to_info(self, monkeypatch, restore_structlog):
        """Test that an unknown LOGSEQ_BRIDGE_LOG_LEVEL means INFO."""
        monkeypatch.setenv("LOGSEQ_BRIDGE_LOG_LEVEL", "chatty")
        log_file = bridge_logging.configure_logging()

        logger = bridge_logging.get_logger("tests")
        logger.debug("hidden")
        logger.info("shown")

        events = [json.loads(line)["event"] for line in log_file.read_text().splitlines()]
        assert "hidden" not in events
        assert "shown" in events


class TestLibraryDefault:
    """Tests for configure_library_default()."""

    def test_unconfigured_structlog_only_shows_warnings(self, capsys, restore_structlog):
        """Test that debug events are not printed for library callers."""
        structlog.reset_defaults()
        bridge_logging.configure_library_default()

        logger = bridge_logging.get_logger("tests")
        logger.debug("parser_line_classified")
        logger.warning("parser_indent_jump")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "parser_line_classified" not in captured.err
        assert "parser_indent_jump" in captured.err

    def test_existing_configuration_left_alone(self, restore_structlog):
        """Test that an application's own structlog setup wins."""
        bridge_logging.configure_logging()
        before = structlog.get_config()

        bridge_logging.configure_library_default()

        assert structlog.get_config() == before
