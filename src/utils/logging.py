"""Logging setup for Job Match.

All loggers live under the ``job_match`` namespace. Modules ask for a child
with ``get_logger("matching.engine")``; the CLI calls ``configure_logging``
once with the level from settings or ``--log-level``.
"""

import logging
import sys
from typing import Any, TextIO

LOGGER_NAME = "job_match"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(
    level: str | None = None,
    *,
    stream: TextIO | None = None,
    format_string: str = LOG_FORMAT,
    date_format: str = DATE_FORMAT,
) -> logging.Logger:
    """Configure and return the ``job_match`` logger.

    The first call installs a single stream handler (stderr by default, so
    results printed to stdout stay machine-readable). Later calls only change
    the level.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
        stream: Stream for the handler; only used on the first call.
        format_string: Format for log records.
        date_format: Format for the ``asctime`` field.
    """
    global _configured

    logger = logging.getLogger(LOGGER_NAME)
    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logger.setLevel(log_level)

    if _configured:
        for handler in logger.handlers:
            handler.setLevel(log_level)
        return logger

    logger.handlers.clear()
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(format_string, datefmt=date_format))
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the ``job_match.<name>`` child logger."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def format_fields(**fields: Any) -> str:
    """Render ``key=value`` pairs in argument order; floats get one decimal."""
    parts = []
    for key, value in fields.items():
        if isinstance(value, float):
            value = f"{value:.1f}"
        parts.append(f"{key}={value}")
    return " ".join(parts)


def log_if_slow(
    logger: logging.Logger,
    operation: str,
    elapsed_ms: float,
    target_ms: float,
    **fields: Any,
) -> bool:
    """Warn when ``elapsed_ms`` exceeds ``target_ms``. Returns True if it did."""
    if elapsed_ms <= target_ms:
        return False
    logger.warning(
        "%s exceeded performance target %s",
        operation,
        format_fields(**fields, elapsed_ms=elapsed_ms, target_ms=target_ms),
    )
    return True


def reset_logging() -> None:
    """Drop handlers and return the logger to its unconfigured state."""
    global _configured

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True

    _configured = False
