"""Logging setup for the promptpipeline package."""

import json
import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingSettings, get_settings

PACKAGE_LOGGER = "promptpipeline"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(
    settings: Optional[LoggingSettings] = None,
    console: Optional[Console] = None
) -> logging.Logger:
    """
    Configure the package logger.

    Formats:
    - rich: RichHandler with tracebacks, for interactive use
    - json: one JSON document per line, for log shippers
    - plain: standard "level name: message" lines
    """
    settings = settings or get_settings().logging
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if settings.format == "rich":
        handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        if settings.format == "json":
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False
    return logger
