# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Structured logging for the MCP runtime.

JSON lines for production, plain text for local development. Under the
stdio transport the handler must write to stderr, so every entry point
takes the console stream explicitly.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with `extra` fields merged in at top level"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        )
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable single line format"""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure a logger with a single console handler.

    Args:
        name: Logger name
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" or "text"
        stream: Console stream, stdout when omitted

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Reconfiguring replaces the previous handler
    logger.handlers = []

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if log_format == "json" else TextFormatter())
    logger.addHandler(handler)
    return logger


def configure_logging(config: Any, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure the package root logger from a Config.

    Module loggers (logging.getLogger(__name__)) propagate to it.
    """
    return get_logger(
        "mcp_runtime",
        log_level=config.log_level,
        log_format=config.log_format,
        stream=stream
    )


def log_event(logger: logging.Logger, event: str, level: str = "INFO", **fields: Any) -> None:
    """Log a named event with structured fields (serialized by JSONFormatter)"""
    getattr(logger, level.lower())(event, extra=fields)
