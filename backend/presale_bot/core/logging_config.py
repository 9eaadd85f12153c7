"""
Logging Configuration Module

Centralized logging setup for the presale distributor
"""

import json
import logging
import sys

# Attributes every LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line

    Fields passed via `extra=` (deposit signature, error code, path...) are
    emitted as top-level keys next to the standard ones.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure application-wide logging

    All modules log under the "presale_bot" logger tree
    (logging.getLogger(__name__) inside the package), so one handler here
    covers the API, the poller and the chain client.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format for production log aggregation

    Example:
        setup_logging(level="DEBUG", json_format=False)
    """
    logger = logging.getLogger("presale_bot")
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        formatter = JsonFormatter(datefmt='%Y-%m-%dT%H:%M:%S%z')
    else:
        # Human-readable formatter for development
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False


def get_logger(name: str = "presale_bot") -> logging.Logger:
    """Get a logger under the "presale_bot" tree"""
    return logging.getLogger(name)
