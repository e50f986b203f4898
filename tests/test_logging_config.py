"""Tests for logging setup."""

import logging

import pytest

from shipcheck.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_level_and_quiet_http_loggers(self, restore_root_logger):
        """Test the root level is applied and HTTP chatter is silenced."""
        setup_logging(level="debug")
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        """Test an unknown level name means INFO."""
        setup_logging(level="chatty")
        assert restore_root_logger.level == logging.INFO

    def test_log_file(self, restore_root_logger, tmp_path):
        """Test messages are also written to the log file."""
        log_file = tmp_path / "logs" / "run.log"
        setup_logging(log_file=str(log_file))

        logging.getLogger("shipcheck.test").info("crawl started")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert "crawl started" in log_file.read_text()

    def test_file_records_are_timestamped_and_named(self, restore_root_logger, tmp_path):
        """Test file records carry the logger name while the console stays compact."""
        log_file = tmp_path / "run.log"
        setup_logging(log_file=str(log_file))

        logging.getLogger("shipcheck.crawler").warning("ERROR CRAWL - https://x.test/")
        console, to_file = restore_root_logger.handlers[:2]
        for handler in (console, to_file):
            handler.flush()

        line = log_file.read_text().strip()
        assert " - shipcheck.crawler - WARNING - ERROR CRAWL - https://x.test/" in line
        assert console.formatter._fmt == "%(levelname)-7s %(message)s"
        assert logging.getLogger("playwright").level == logging.WARNING
