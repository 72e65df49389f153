# emulator/protocol_rpc/logging_config.py
"""
Routes uvicorn's standard-library loggers into loguru.

The emulator logs everything through loguru (see ``setup_loguru_config``), so
server startup, errors and access lines end up in the same sink as ledger
events. Access lines for ``/health`` and ``/ready`` are dropped.
"""

import logging
import os

from loguru import logger

QUIET_PATHS = ("/health", "/ready")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def resolve_log_level(default: str = "INFO") -> str:
    """LOG_LEVEL from the environment, falling back to ``default`` when unknown."""
    level = os.getenv("LOG_LEVEL", default).upper()
    return level if level in LOG_LEVELS else default


def is_quiet_access_line(message: str) -> bool:
    return any(f'"GET {path} ' in message for path in QUIET_PATHS)


class LoguruInterceptHandler(logging.Handler):
    """Forwards stdlib records to loguru, keeping the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        if record.name == "uvicorn.access" and is_quiet_access_line(message):
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, message)


def get_uvicorn_log_config(level: str | None = None) -> dict:
    """dictConfig for ``uvicorn.run(log_config=...)`` sending its loggers to loguru.

    ``level`` defaults to LOG_LEVEL, which ``--verbose`` sets to DEBUG.
    """
    level = (level or resolve_log_level()).upper()
    # loguru-only levels have no stdlib counterpart
    stdlib_level = {"TRACE": "DEBUG", "SUCCESS": "INFO"}.get(level, level)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "loguru": {"()": LoguruInterceptHandler},
        },
        "loggers": {
            name: {"handlers": ["loguru"], "level": stdlib_level, "propagate": False}
            for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }
