"""Tests for application and console logging setup."""

import io
import logging
from logging.handlers import RotatingFileHandler

from core.logging import (
    CONSOLE_LOGGER_NAME,
    LOG_FILE_NAME,
    ConsoleFormatter,
    configure_console,
    configure_logging,
    get_logger,
)


def _record(message: str, tag: str | None = None) -> logging.LogRecord:
    record = logging.LogRecord("pfsifter.console", logging.INFO, __file__, 1, message, None, None)
    if tag is not None:
        record.tag = tag
    return record


class TestConfigureLogging:
    def test_creates_rotating_log_file(self, tmp_path):
        logger = configure_logging(tmp_path / "logs", max_bytes=1024 * 1024, backup_count=2)

        handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert handlers[0].maxBytes == 1024 * 1024
        assert handlers[0].backupCount == 2

        get_logger("tests").info("hello from tests")
        for handler in logger.handlers:
            handler.flush()
        content = (tmp_path / "logs" / LOG_FILE_NAME).read_text(encoding="utf-8")
        assert "hello from tests" in content
        assert "pfsifter.tests" in content

    def test_reconfigure_does_not_duplicate_handlers(self, tmp_path):
        configure_logging(tmp_path)
        logger = configure_logging(tmp_path)
        assert len(logger.handlers) == 2

    def test_level_applied(self, tmp_path):
        logger = configure_logging(tmp_path, level=logging.DEBUG)
        assert logger.level == logging.DEBUG


class TestConsoleLogger:
    def test_console_does_not_reach_log_file(self, tmp_path):
        configure_logging(tmp_path)
        stream = io.StringIO()
        configure_console(stream)

        logging.getLogger(CONSOLE_LOGGER_NAME).info("record dump line")

        assert stream.getvalue() == "record dump line\n"
        for handler in logging.getLogger("pfsifter").handlers:
            handler.flush()
        assert "record dump line" not in (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")

    def test_non_tty_stream_gets_plain_formatter(self):
        stream = io.StringIO()
        logger = configure_console(stream)

        logger.info("C:\\TEMP\\EVIL.EXE", extra={"tag": "keyword-match"})

        assert stream.getvalue() == "C:\\TEMP\\EVIL.EXE  <keyword-match>\n"


class TestConsoleFormatter:
    def test_untagged_message_unchanged(self):
        assert ConsoleFormatter(use_color=True).format(_record("plain")) == "plain"

    def test_colored_emphasis(self):
        rendered = ConsoleFormatter(use_color=True).format(_record("x", "tracked-executable"))
        assert rendered.startswith("\x1b[")
        assert rendered.endswith("\x1b[0m")
        assert "x" in rendered

    def test_unknown_tag_ignored(self):
        assert ConsoleFormatter(use_color=False).format(_record("x", "normal")) == "x"


def test_get_logger_namespace():
    assert get_logger().name == "pfsifter"
    assert get_logger("reports.sinks").name == "pfsifter.reports.sinks"
