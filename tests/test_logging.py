"""
Tests for the flexible logger, the UTC formatter and logging configuration
"""

import logging
from unittest.mock import patch

from backend.startup import logging_config
from backend.utils.logging_formatter import UTCTimestampFormatter
from backend.utils.verbosity_logger import FlexibleLogger, parse_levels, sanitize_log


def make_record(message="hello", created=0.0):
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
    record.created = created
    record.msecs = 0
    return record


class TestParseLevels:
    def test_pipe_separated(self):
        assert parse_levels("INFO|ERROR") == {logging.INFO, logging.ERROR}

    def test_unknown_names_ignored(self):
        assert parse_levels("info | LOUD") == {logging.INFO}


class TestFlexibleLogger:
    def test_only_configured_levels_are_emitted(self):
        with patch("backend.utils.verbosity_logger.get_log_levels", return_value="ERROR"):
            flexible = FlexibleLogger("tests.flexible.only_error")

        with patch.object(flexible.logger, "info") as info, patch.object(
            flexible.logger, "error"
        ) as error:
            flexible.info("quiet %s", 1)
            flexible.error("loud %s", 2)

        info.assert_not_called()
        error.assert_called_once_with("loud %s", 2)

    def test_invalid_configuration_falls_back_to_defaults(self):
        with patch("backend.utils.verbosity_logger.get_log_levels", return_value="NOPE"):
            flexible = FlexibleLogger("tests.flexible.fallback")

        assert flexible.is_enabled_for(logging.INFO)
        assert not flexible.is_enabled_for(logging.DEBUG)

    def test_sanitize_log_strips_newlines(self):
        assert sanitize_log("line1\r\nline2") == "line1line2"


class TestUTCTimestampFormatter:
    def test_format_time(self):
        formatter = UTCTimestampFormatter("%(message)s")

        assert formatter.formatTime(make_record()) == "1970-01-01T00:00:00.000Z"

    def test_prefixes_timestamp_when_format_lacks_asctime(self):
        formatter = UTCTimestampFormatter("%(levelname)s: %(message)s")

        assert formatter.format(make_record()) == "1970-01-01T00:00:00.000Z INFO: hello"

    def test_asctime_format_is_not_prefixed_twice(self):
        formatter = UTCTimestampFormatter("%(asctime)s %(message)s")

        assert formatter.format(make_record()) == "1970-01-01T00:00:00.000Z hello"


class TestConfigureLogging:
    def test_creates_log_file_in_configured_directory(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANT_SUPPORT_LOG_DIR", str(tmp_path / "logs"))
        previous = list(logging.root.handlers)
        try:
            with patch("backend.config.config.get_log_file", return_value=None):
                logging_config.configure_logging()

            assert (tmp_path / "logs" / "backend.log").exists()
            assert all(
                isinstance(handler.formatter, UTCTimestampFormatter)
                for handler in logging.root.handlers
            )
        finally:
            for handler in logging.root.handlers:
                handler.close()
            logging.root.handlers = previous

    def test_configured_log_file_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANT_SUPPORT_LOG_DIR", str(tmp_path / "ignored"))
        log_file = tmp_path / "var" / "ant-support.log"
        previous = list(logging.root.handlers)
        try:
            with patch("backend.config.config.get_log_file", return_value=str(log_file)):
                logging_config.configure_logging()

            assert log_file.exists()
            assert not (tmp_path / "ignored").exists()
        finally:
            for handler in logging.root.handlers:
                handler.close()
            logging.root.handlers = previous
