import json
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler

import pytest

from sellerwatch.logging_config import JSONFormatter, configure_logging


def _record(msg="hello world", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="sellerwatch.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    def test_basic_format(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "sellerwatch.test"
        assert data["message"] == "hello world"
        assert "timestamp" in data

    def test_extra_fields_included(self):
        record = _record("capturing")
        record.seller_id = "2199171685"
        record.snapshot_id = 42
        record.phase = "diffing"

        data = json.loads(JSONFormatter().format(record))

        assert data["seller_id"] == "2199171685"
        assert data["snapshot_id"] == 42
        assert data["phase"] == "diffing"

    def test_extra_fields_absent_when_not_set(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert "seller_id" not in data
        assert "snapshot_id" not in data

    def test_datetime_extra_serialized(self):
        record = _record()
        record.item_id = datetime(2026, 1, 2, 3, 4, 5)

        data = json.loads(JSONFormatter().format(record))

        assert data["item_id"] == "2026-01-02T03:04:05"

    def test_unserializable_extra_raises(self):
        record = _record()
        record.item_id = object()

        with pytest.raises(TypeError, match="not JSON serializable"):
            JSONFormatter().format(record)

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record("error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError" in data["exception"]
        assert "boom" in data["exception"]

    def test_unicode_message(self):
        data = json.loads(JSONFormatter().format(_record("Anúncio pausado: Caneca ção")))

        assert data["message"] == "Anúncio pausado: Caneca ção"


class TestConfigureLogging:
    def test_json_format(self):
        configure_logging(level="DEBUG", json_format=True)
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_human_readable_format(self):
        configure_logging(level="WARNING", json_format=False)
        root = logging.getLogger()

        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_clears_existing_handlers(self):
        root = logging.getLogger()
        root.addHandler(logging.StreamHandler())
        root.addHandler(logging.StreamHandler())

        configure_logging(level="INFO", json_format=True)

        assert len(root.handlers) == 1

    def test_file_handler_writes(self, tmp_path):
        log_file = tmp_path / "nested" / "sellerwatch.log"
        configure_logging(level="INFO", json_format=True, log_file=str(log_file))
        root = logging.getLogger()

        assert isinstance(root.handlers[1], RotatingFileHandler)
        logging.getLogger("sellerwatch.test_file").info("file handler test")

        data = json.loads(log_file.read_text().strip())
        assert data["message"] == "file handler test"
