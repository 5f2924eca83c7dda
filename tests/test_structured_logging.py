"""
Tests for structured logging module.
"""

import json
import logging
import sys

import pytest

from chartwallet.core.exceptions import ValidationError
from chartwallet.core.structured_logging import JSONFormatter, configure_logging


def make_record(msg="Test message", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_formatting(self):
        log_data = json.loads(JSONFormatter().format(make_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test.logger"
        assert log_data["message"] == "Test message"
        assert log_data["timestamp"].endswith("Z")
        assert log_data["source"]["line"] == 10

    def test_exception_formatting(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        log_data = json.loads(JSONFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info)))

        assert log_data["exception"]["type"] == "ValueError"
        assert log_data["exception"]["message"] == "Test error"
        assert log_data["exception"]["traceback"]

    def test_traceback_optional(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        formatter = JSONFormatter(include_traceback=False)
        log_data = json.loads(formatter.format(make_record(exc_info=exc_info)))

        assert "traceback" not in log_data["exception"]

    def test_extra_record_fields(self):
        record = make_record(symbol="AAPL", symbols=("AAPL", "MSFT"), error=ValidationError("bad"))
        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["symbol"] == "AAPL"
        assert log_data["symbols"] == ["AAPL", "MSFT"]
        assert log_data["error"]["error_code"] == "VALIDATION_ERROR"

    def test_static_extra_fields(self):
        formatter = JSONFormatter(extra_fields={"service": "chartwallet"})
        log_data = json.loads(formatter.format(make_record()))

        assert log_data["service"] == "chartwallet"


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_plain(self):
        configure_logging(level="DEBUG")
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("websockets").level == logging.INFO

    def test_json_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        configure_logging(level=logging.INFO, json_format=True, log_file=str(log_file))

        logging.getLogger("chartwallet.test").info("hello %s", "world")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["message"] == "hello world"
        for handler in logging.getLogger().handlers:
            if isinstance(handler, logging.FileHandler):
                handler.close()
