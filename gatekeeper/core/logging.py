"""Structured key=value logging for Gatekeeper.

Fields passed through ``extra=`` are rendered after the message, so call sites
can write ``logger.info("...", extra={"provider_id": pid})`` and get a
greppable line without building strings by hand.
"""

import logging
import sys
from typing import Any

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "extra_data", "run_id"}

_ENV_LEVELS = {
    "dev": logging.DEBUG,
    "test": logging.WARNING,
}


class StructuredFormatter(logging.Formatter):
    """Render a record as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        if hasattr(record, "run_id"):
            log_data["run_id"] = record.run_id

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        line = " ".join(f"{k}={v}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_for_env() -> int:
    try:
        from gatekeeper.core.config import get_settings

        return _ENV_LEVELS.get(get_settings().GATEKEEPER_ENV, logging.INFO)
    except Exception:
        # Settings may be unavailable while the process is still booting
        return logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the structured handler attached once.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_env())

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    A ``run_id`` keyword is lifted out so it always renders right after the
    message; everything else is appended as-is.
    """
    extra: dict[str, Any] = {}
    if "run_id" in kwargs:
        extra["run_id"] = kwargs.pop("run_id")
    extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)
