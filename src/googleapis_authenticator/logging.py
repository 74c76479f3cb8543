"""Logging configuration.

Production output is one JSON object per line in the Google Cloud Logging
format; development output is colored text on stderr. Standard library
loggers (google-auth, urllib3, httpx) are routed through loguru.
"""

import json
import logging
import sys
import traceback
from typing import Any

from loguru import logger

# Loguru level name -> Cloud Logging severity
_SEVERITY = {
    "TRACE": "DEBUG",
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "SUCCESS": "INFO",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}

_LIBRARY_LOGGERS = ("google.auth", "google.api_core", "urllib3", "httpx", "httpcore")

_DEV_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
    "{exception}"
)


def _serialize_record(record: dict[str, Any]) -> str:
    """Serialize a loguru record to a Cloud Logging JSON line.

    Call sites pass context as ``logger.info(msg, extra={...})``, which loguru
    stores under ``record["extra"]["extra"]``. Those fields are lifted to the
    top level next to ``logger`` (the emitting module, e.g. ``google.auth``).
    """
    entry: dict[str, Any] = {
        "severity": _SEVERITY.get(record["level"].name, "INFO"),
        "message": record["message"],
        "time": record["time"].isoformat(),
        "logger": record["name"],
    }

    bound = dict(record["extra"])
    fields = bound.pop("extra", None)
    if isinstance(fields, dict):
        bound.update(fields)
    for key, value in bound.items():
        if not key.startswith("_") and key not in entry:
            entry[key] = value

    exception = record["exception"]
    if exception is not None:
        entry["exception"] = {
            "type": exception.type.__name__ if exception.type else None,
            "value": str(exception.value) if exception.value else None,
            "traceback": "".join(
                traceback.format_exception(exception.type, exception.value, exception.traceback)
            )
            if exception.traceback
            else None,
        }

    return json.dumps(entry, default=str)


def _json_sink(message: Any) -> None:
    sys.stdout.write(_serialize_record(message.record) + "\n")
    sys.stdout.flush()


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging-module frames so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(*, is_production: bool, log_level: str = "INFO") -> None:
    """Configure loguru.

    Args:
        is_production: If True, output JSON for Cloud Logging. If False, use
            human-readable colored output.
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logger.remove()

    if is_production:
        logger.add(
            _json_sink,
            level=log_level,
            format="{message}",
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            level=log_level,
            format=_DEV_FORMAT,
            colorize=True,
            backtrace=True,
            diagnose=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=log_level, force=True)
    for name in _LIBRARY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.setLevel(log_level)
        library_logger.handlers = [InterceptHandler()]
        library_logger.propagate = False
