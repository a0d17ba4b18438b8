# tests/unit/test_logging.py
import logging as std_logging

import pytest

from fidoenroll import config
from fidoenroll import logging as app_logging


@pytest.fixture(autouse=True)
def reset_logger():
    logger = std_logging.getLogger("fidoenroll")
    saved = list(logger.handlers)
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = saved


def test_redacting_filter():
    record = std_logging.LogRecord("fidoenroll", std_logging.INFO, __file__, 1, "%(credential)s", None, None)
    record.args = {"credential": "alice:secret", "nested": {"pin": "1234", "user": "alice"}}

    assert app_logging.RedactingFilter().filter(record)
    assert record.args == {"credential": "[REDACTED]", "nested": {"pin": "[REDACTED]", "user": "alice"}}


def test_plain_logging_setup(reset_logger):
    cfg = config.AppConfig.model_validate({"logging": {"level": "debug"}})

    app_logging.setup_logging(cfg)

    assert reset_logger.level == std_logging.DEBUG
    assert len(reset_logger.handlers) == 1
    assert any(isinstance(f, app_logging.RedactingFilter) for f in reset_logger.handlers[0].filters)


def test_json_logging_setup(reset_logger):
    from pythonjsonlogger.json import JsonFormatter

    cfg = config.AppConfig.model_validate({"logging": {"level": "INFO", "json": True}})

    app_logging.setup_logging(cfg)

    assert reset_logger.level == std_logging.INFO
    (handler,) = reset_logger.handlers
    assert isinstance(handler.formatter, JsonFormatter)
