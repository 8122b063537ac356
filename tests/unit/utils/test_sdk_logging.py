"""Tests for logging configuration utilities."""

import json
import logging
from pathlib import Path
import sys

import pytest

from popuparchive.core.utils.logging import (
    StructuredJSONFormatter,
    configure_logging,
    get_logger,
)


def _record(msg: str = "HTTP response", level: int = logging.DEBUG) -> logging.LogRecord:
    record = logging.LogRecord(
        name="popuparchive.core.api.http",
        level=level,
        pathname="/path/to/client.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.funcName = "dispatch"
    record.module = "client"
    return record


class TestStructuredJSONFormatter:
    def test_basic_log_format(self):
        output = StructuredJSONFormatter().format(_record())
        data = json.loads(output)

        assert data["level"] == "DEBUG"
        assert data["message"] == "HTTP response"
        assert "timestamp" in data
        assert data["context"]["logger_name"] == "popuparchive.core.api.http"
        assert data["context"]["module"] == "client"
        assert data["context"]["function"] == "dispatch"
        assert data["context"]["line"] == 42

    def test_extra_fields_in_context(self):
        record = _record()
        record.method = "GET"
        record.status_code = 404
        record.elapsed_ms = 12

        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["context"]["method"] == "GET"
        assert data["context"]["status_code"] == 404
        assert data["context"]["elapsed_ms"] == 12
        assert "msg" not in data["context"]
        assert "args" not in data["context"]

    def test_exception_info(self):
        try:
            raise ValueError("bad body")
        except ValueError:
            record = logging.LogRecord(
                name="popuparchive",
                level=logging.ERROR,
                pathname=__file__,
                lineno=1,
                msg="failed",
                args=(),
                exc_info=sys.exc_info(),
            )

        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["context"]["error_type"] == "ValueError"
        assert data["context"]["error_message"] == "bad body"
        assert "Traceback" in data["context"]["stack_trace"]


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers[:]:
            if handler not in handlers:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)

    def test_level_and_noisy_loggers(self):
        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.ERROR
        assert logging.getLogger("httpcore").level == logging.ERROR

    def test_structured_file_output(self, tmp_path: Path):
        log_file = tmp_path / "sdk.jsonl"
        configure_logging(level="INFO", filename=str(log_file), structured=True)
        logging.getLogger("popuparchive.test").info("hello", extra={"url": "https://x"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "hello"
        assert entry["context"]["url"] == "https://x"

    def test_custom_format(self, tmp_path: Path):
        log_file = tmp_path / "sdk.log"
        configure_logging(
            level="INFO", format_string="%(levelname)s|%(message)s", filename=str(log_file)
        )
        logging.getLogger("popuparchive.test").warning("careful")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.read_text().strip().endswith("WARNING|careful")


class TestGetLogger:
    def test_plain_logger(self):
        logger = get_logger("popuparchive.test")
        assert isinstance(logger, logging.Logger)

    def test_adapter_with_context(self):
        logger = get_logger("popuparchive.test", client_id="cid")
        assert isinstance(logger, logging.LoggerAdapter)
        assert logger.extra == {"client_id": "cid"}
