"""
Logging utilities for notevc.

The library itself only calls ``logging.getLogger(__name__)``; applications
embedding it decide how records are rendered. This module offers the two
setups the tool ships with: plain text for terminals and single-line JSON for
log collectors.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

ROOT_LOGGER_NAME = "notevc"

# Present on every JSON line, null when a record does not carry them
CONTEXT_FIELDS = ("repository", "commit", "file")

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
}


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter emitting one object per line.

    Fields:
    - timestamp: record creation time, ISO 8601 in UTC
    - level, logger, message
    - repository, commit, file: always present, null when absent
    - any other extra fields, stringified when not JSON serializable
    - exception: formatted traceback, when present
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            log_obj[key] = extras.pop(key, None)
        for key, value in extras.items():
            log_obj[key] = value if _is_json_value(value) else str(value)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def _is_json_value(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def configure_logging(
    level: int | str = logging.WARNING,
    json_format: bool = False,
    stream: Any = None,
) -> logging.Logger:
    """
    Configure the ``notevc`` logger hierarchy.

    Args:
        level: Logging level, as an int or a level name such as "DEBUG"
        json_format: Emit structured JSON instead of plain text
        stream: Output stream (default: stderr)

    Returns:
        The configured ``notevc`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_format:
        handler.setFormatter(StructuredJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    return logger


def apply_log_level(level: str) -> bool:
    """
    Set the ``notevc`` logger level from a settings value.

    An explicit level set by the embedding application (through
    configure_logging or logging itself) is left alone.

    Args:
        level: Level name such as "INFO"

    Returns:
        True if the level was applied
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if logger.level != logging.NOTSET:
        return False

    name = level.upper()
    if not isinstance(logging.getLevelName(name), int):
        logger.warning(f"Ignoring unknown log level {level!r} in settings")
        return False

    logger.setLevel(name)
    return True


def get_notevc_logger(name: str) -> logging.Logger:
    """
    Get a logger below the ``notevc`` namespace.

    Args:
        name: Component name (e.g., 'workspace', 'blob_store')

    Returns:
        Logger instance with name 'notevc.{name}'
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class RepositoryLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps repository context onto every record.

    Used by the workspace so that every commit/restore line can be traced
    back to the repository root it touched. A ``commit`` or ``file`` passed
    in a call's ``extra`` sits alongside the repository; call-site values
    win over the adapter's own.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Merge repository context under the call's extra fields."""
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs
