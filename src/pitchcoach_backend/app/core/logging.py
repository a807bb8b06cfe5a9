# src/pitchcoach_backend/app/core/logging.py
from __future__ import annotations
import logging
import os
from typing import Optional

ROOT_LOGGER = "pitchcoach"

# driver chatter that drowns the auth trace at INFO
_QUIET_LOGGERS = ("aiosqlite", "asyncpg", "jwt")

_FMT = "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def level_from_env(var: str = "LOG_LEVEL", default: str = "INFO") -> int:
    """Map LOG_LEVEL (case-insensitive) to a logging level; unknown names fall back to default."""
    name = (os.getenv(var) or default).strip().upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    return logging.getLevelName(default.upper())


def get_logger(component: str) -> logging.Logger:
    """Project logger, e.g. get_logger("auth") -> "pitchcoach.auth"."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def setup_logging(level: Optional[int] = None) -> None:
    """
    Configure logging once. Idempotent.

    LOG_LEVEL sets the level of the pitchcoach.* loggers (default INFO) unless
    ``level`` is passed. A console handler is installed on the root logger only
    when nobody else did (pytest, uvicorn and alembic bring their own).
    """
    level = level if level is not None else level_from_env()

    logging.getLogger(ROOT_LOGGER).setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FMT, datefmt=_DATEFMT))
    root.setLevel(level)
    root.addHandler(handler)
