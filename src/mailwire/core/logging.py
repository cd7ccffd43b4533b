"""Logging configuration for the command line tools and embedding apps.

The library itself only attaches a :class:`logging.NullHandler` to the
``mailwire`` logger; :func:`configure_logging` is opt-in.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from .config import LoggingSettings

PACKAGE_LOGGER = "mailwire"
TRANSPORT_LOGGER = "mailwire.transport"


def _structured_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment emitting one JSON-like object per record."""
    return {
        "format": (
            '{{"time": "{asctime}", "level": "{levelname}", '
            '"logger": "{name}", "message": "{message}"}}'
        ),
        "style": "{",
    }


def _plain_formatter() -> dict[str, Any]:
    return {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"}


def configure_logging(settings: LoggingSettings) -> None:
    """Install a console handler and the levels from ``settings``.

    Connection and wire events come from ``mailwire.transport``; its level
    can be raised or lowered apart from the rest of the package.
    """
    formatter = _structured_formatter() if settings.structured else _plain_formatter()
    loggers: dict[str, Any] = {
        PACKAGE_LOGGER: {"level": settings.level, "propagate": True},
    }
    if settings.transport_level:
        loggers[TRANSPORT_LOGGER] = {
            "level": settings.transport_level,
            "propagate": True,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": loggers,
            "root": {"handlers": ["console"], "level": settings.level},
        }
    )


__all__ = ["PACKAGE_LOGGER", "TRANSPORT_LOGGER", "configure_logging"]
