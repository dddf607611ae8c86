"""Tests for logger module."""

import logging
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from auditcord.util.logger import (
    LOGS_DIR,
    NOISY_LOGGERS,
    ColorFormatter,
    PromptToolkitHandler,
    get_log_filepath,
    get_logger,
    handle_exception,
    setup_logger,
    should_use_color,
)


class DummyStream:
    def isatty(self):
        return True


class TestShouldUseColor:
    """Tests for should_use_color function."""

    def test_should_use_color_tty(self, monkeypatch):
        monkeypatch.setattr("sys.stderr", DummyStream())
        assert should_use_color() is True

    @patch("sys.stderr.isatty")
    def test_should_use_color_no_tty(self, mock_isatty):
        mock_isatty.return_value = False
        assert should_use_color() is False

    @patch("sys.stderr.isatty")
    def test_should_use_color_exception(self, mock_isatty):
        mock_isatty.side_effect = ValueError("closed stream")
        assert should_use_color() is False


class TestColorFormatter:
    def test_error_is_red(self):
        formatter = ColorFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("test", logging.ERROR, "", 0, "error occurred", None, None)

        formatted = formatter.format(record)

        assert "\033[31m" in formatted and "error occurred" in formatted
        assert formatted.endswith("\033[0m")

    def test_unknown_level_is_plain(self):
        formatter = ColorFormatter("%(message)s")
        record = logging.LogRecord("test", 5, "", 0, "trace", None, None)
        record.levelname = "TRACE"

        assert formatter.format(record) == "trace"


class TestSetupLogger:
    def test_get_logger_returns_configured_logger(self):
        logger = get_logger("test_logger")

        assert isinstance(logger, logging.Logger)
        assert logger.propagate is False
        assert any(isinstance(h, PromptToolkitHandler) for h in logger.handlers)
        assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)

    def test_setup_logger_idempotent(self):
        logger1 = setup_logger("test_logger_idem")
        logger2 = setup_logger("test_logger_idem")

        assert logger1 is logger2
        assert len(logger1.handlers) == 2

    def test_console_handler_hides_debug(self):
        logger = get_logger("test_logger_levels")
        console_handler = next(h for h in logger.handlers if isinstance(h, PromptToolkitHandler))

        assert console_handler.level == logging.INFO
        assert logger.level == logging.DEBUG


def test_get_log_filepath_is_stable_within_session():
    path = get_log_filepath()

    assert path == get_log_filepath()
    assert path.parent == LOGS_DIR
    assert path.suffix == ".log"


def test_noisy_libraries_are_silenced():
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.ERROR


def test_handle_exception_logs_error(caplog):
    class DummyException(Exception):
        pass

    with caplog.at_level(logging.ERROR):
        try:
            raise DummyException("fail")
        except DummyException as exc:
            handle_exception(DummyException, exc, exc.__traceback__)

    assert any("Uncaught exception" in r.message for r in caplog.records)
