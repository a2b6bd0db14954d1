"""
Logging configuration for the Price Proxy Service.
Supports both JSON and text logging formats.
"""

import logging
import logging.config
import sys
from typing import Dict, Any
from pythonjsonlogger.json import JsonFormatter

from .config import settings

JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s %(module)s %(funcName)s %(lineno)d"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s (%(filename)s:%(lineno)d)"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging() -> None:
    """Setup structured logging for the application."""
    logging.config.dictConfig(build_logging_config(settings.log_format, settings.log_level))

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_logging_config(log_format: str, log_level: str) -> Dict[str, Any]:
    """
    Build a dictConfig with one stdout handler on the root logger.

    Service loggers live under ``price_proxy`` and propagate to the root, so
    every record goes through the same formatter exactly once.
    """
    if log_format == "json":
        formatter: Dict[str, Any] = {"()": JsonFormatter, "format": JSON_FIELDS, "datefmt": DATE_FORMAT}
    else:
        formatter = {"format": TEXT_FORMAT, "datefmt": DATE_FORMAT}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": sys.stdout
            }
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {
            "price_proxy": {"level": log_level, "propagate": True}
        }
    }


def create_logger(module_name: str) -> logging.Logger:
    """Create a logger for a specific module under the service namespace."""
    if module_name.startswith("price_proxy"):
        return logging.getLogger(module_name)
    return logging.getLogger(f"price_proxy.{module_name}")
