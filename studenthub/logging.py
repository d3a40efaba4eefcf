"""
Logging setup for the StudentHub API, socket server and cron jobs.

    from studenthub.logging import get_logger
    logger = get_logger(__name__)

Log lines carry ids and user text (titles, filenames, chat ids sent over
the socket); pass those through the sanitizers below first.
"""

import logging
import os
import re
import sys
from functools import cache

from bson import ObjectId

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FORMAT_PRODUCTION = "[%(levelname)s] %(name)s: %(message)s"

# Driver, gateway client and socket internals stay at WARNING; request
# lines come from RequestLoggingMiddleware instead of uvicorn.access
LIBRARY_LOG_LEVELS = {
    "pymongo": logging.WARNING,
    "motor": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "socketio": logging.WARNING,
    "engineio": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def configure_logging(level: str | None = None) -> None:
    """Attach a stdout handler to the root logger unless one is already set."""
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    production = os.environ.get("NODE_ENV") == "production"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_PRODUCTION if production else LOG_FORMAT))
    root.addHandler(handler)

    for name, library_level in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _escape(value: str) -> str:
    return _CONTROL_CHARS.sub(lambda m: f"\\x{ord(m.group()):02x}", value)


def sanitize_id_for_logging(value: ObjectId | str | None) -> str:
    """
    Short, log-safe form of a document id.

    ObjectIds (or their hex strings) keep their last 8 hex digits, the
    counter part that tells documents apart. Anything else is treated as
    client input: escaped and cut to 24 characters.
    """
    if value is None or value == "":
        return "N/A"
    text = str(value)
    if ObjectId.is_valid(text):
        return text[-8:]
    return sanitize_string_for_logging(text, max_length=24)


def sanitize_string_for_logging(value: object, max_length: int = 50) -> str:
    """Escape control characters and truncate user-supplied text."""
    if value is None or value == "":
        return "N/A"
    text = _escape(str(value))
    if len(text) > max_length:
        return f"{text[:max_length]}..."
    return text


__all__ = [
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
