"""Tests for logging setup."""

import json
import logging

import pytest

from commitscope.config import Settings
from commitscope.logging_config import JsonFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_file_handler_per_context(tmp_path):
    config = Settings(_env_file=None, log_dir=str(tmp_path), log_console_enabled=False)

    setup_logging(context="collect", config=config)
    logging.getLogger("commitscope.test").info("collection started")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "collection started" in (tmp_path / "collect.log").read_text()


def test_console_handlers_split_by_level():
    config = Settings(_env_file=None, log_file_enabled=False)

    setup_logging(context="cli", config=config)

    stdout_handler, stderr_handler = logging.getLogger().handlers
    info = logging.LogRecord("x", logging.INFO, __file__, 1, "m", None, None)
    warning = logging.LogRecord("x", logging.WARNING, __file__, 1, "m", None, None)
    assert stdout_handler.filter(info) and not stdout_handler.filter(warning)
    assert stderr_handler.level == logging.WARNING


def test_json_formatter():
    record = logging.LogRecord("commitscope", logging.WARNING, __file__, 1, "rate %s", ("low",), None)

    data = json.loads(JsonFormatter().format(record))

    assert data["level"] == "WARNING"
    assert data["message"] == "rate low"
