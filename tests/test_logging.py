"""Tests for logging utilities."""

from __future__ import annotations

import logging

from mailwire.core.config import LoggingSettings
from mailwire.core.logging import TRANSPORT_LOGGER, configure_logging


def test_configure_logging_sets_root_level() -> None:
    """configure_logging should set the root logger level according to settings."""

    settings = LoggingSettings(level="DEBUG", structured=False)
    configure_logging(settings)
    assert logging.getLogger().level == logging.DEBUG


def test_transport_level_is_configured_separately() -> None:
    settings = LoggingSettings(level="INFO", transport_level="WARNING")
    configure_logging(settings)
    assert logging.getLogger(TRANSPORT_LOGGER).level == logging.WARNING
    assert logging.getLogger("mailwire").level == logging.INFO


def test_structured_formatter_renders_json_like_records() -> None:
    configure_logging(LoggingSettings(structured=True))
    handler = next(
        h for h in logging.getLogger().handlers if type(h) is logging.StreamHandler
    )
    record = logging.LogRecord("mailwire", logging.INFO, __file__, 1, "hi", None, None)

    rendered = handler.format(record)

    assert rendered.startswith('{"time": ')
    assert '"message": "hi"}' in rendered
