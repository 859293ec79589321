"""
Structured logging (OpenTelemetry-compliant).

Produces structured log output following the OpenTelemetry Logging Data Model.

Usage::

    from ._logging import scoped_logger

    log = scoped_logger("tensor")

    # Debug message (includes code location automatically)
    log.debug("Bound tensor", extra={"shape": [2, 3], "element_type": "FLOAT"})

    # Error message (includes code location automatically)
    log.error("Run failed", extra={"native_code": "ORT_FAIL"})

Environment::

    ORTPIN_LOG_LEVEL=trace|debug|info|warn|error|fatal|off (default: warn)
    ORTPIN_LOG_FORMAT=json|human (default: human if tty, json if piped)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import Any

from ._version import __version__

__all__ = ["logger", "setup_logging", "scoped_logger"]

# =============================================================================
# Level Mapping
# =============================================================================

# Map Python levels to OpenTelemetry severity text
_LEVEL_TO_SEVERITY = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}

# Map string names to Python levels (case-insensitive)
_NAME_TO_LEVEL = {
    "trace": logging.DEBUG,  # Python doesn't have TRACE, use DEBUG
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,  # Higher than any level
}

# Levels that include code location
_CODE_LOCATION_LEVELS = {logging.DEBUG, logging.ERROR, logging.CRITICAL}

# LogRecord attributes that are not user-supplied extras
_STANDARD_FIELDS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "scope",
        "message",
    }
)


def _scope(record: logging.LogRecord) -> str:
    """Scope set by scoped_logger, else the last part of the logger name."""
    return getattr(record, "scope", None) or record.name.rpartition(".")[2] or "ortpin"


def _strip_path_prefix(filepath: str) -> str:
    """Path relative to the ortpin package, for shorter code locations."""
    if "ortpin/" in filepath:
        return filepath[filepath.index("ortpin/") + len("ortpin/") :]
    return filepath


# =============================================================================
# Formatters
# =============================================================================


class JsonFormatter(logging.Formatter):
    """OpenTelemetry-compliant JSON formatter."""

    def format(self, record: logging.LogRecord) -> str:
        # Timestamp with nanosecond precision (RFC3339)
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        timestamp = dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{int(dt.microsecond * 1000):09d}Z"

        severity = _LEVEL_TO_SEVERITY.get(record.levelno, "INFO")

        attributes: dict[str, Any] = {}
        attributes["scope"] = _scope(record)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_FIELDS and not key.startswith("_"):
                attributes[key] = value

        # Code location for DEBUG/ERROR/FATAL
        if record.levelno in _CODE_LOCATION_LEVELS:
            attributes["code.filepath"] = _strip_path_prefix(record.pathname)
            attributes["code.lineno"] = record.lineno

        log_record = {
            "timestamp": timestamp,
            "severityText": severity,
            "body": record.getMessage(),
            "attributes": attributes,
            "resource": {
                "service.name": "ortpin",
                "service.version": __version__,
            },
        }

        return json.dumps(log_record, separators=(",", ":"), default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable formatter for terminal output."""

    # ANSI color codes
    _RESET = "\x1b[0m"
    _DIM = "\x1b[2m"
    _RED = "\x1b[31m"
    _YELLOW = "\x1b[33m"
    _CYAN = "\x1b[36m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self._use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        time_str = dt.strftime("%H:%M:%S")

        severity = _LEVEL_TO_SEVERITY.get(record.levelno, "INFO")

        if self._use_colors:
            if record.levelno <= logging.DEBUG:
                level_color = self._DIM
            elif record.levelno >= logging.ERROR:
                level_color = self._RED
            elif record.levelno >= logging.WARNING:
                level_color = self._YELLOW
            else:
                level_color = ""
        else:
            level_color = ""

        scope = _scope(record)

        parts = [time_str, " "]

        if level_color:
            parts.append(level_color)
        parts.append(f"{severity:<5} ")
        if level_color:
            parts.append(self._RESET)

        if self._use_colors:
            parts.append(self._CYAN)
        parts.append(f"[{scope}] ")
        if self._use_colors:
            parts.append(self._RESET)

        parts.append(record.getMessage())

        # Tensor shape shown inline, in parentheses
        shape = getattr(record, "shape", None)
        if shape is not None:
            parts.append(f" (shape={list(shape)})")

        if record.levelno in _CODE_LOCATION_LEVELS:
            filepath = _strip_path_prefix(record.pathname)
            if self._use_colors:
                parts.append(self._DIM)
            parts.append(f" [{filepath}:{record.lineno}]")
            if self._use_colors:
                parts.append(self._RESET)

        return "".join(parts)


# =============================================================================
# Logger Setup
# =============================================================================


def _get_log_level() -> int:
    """Get log level from environment."""
    level_name = os.environ.get("ORTPIN_LOG_LEVEL", "warn")
    return _NAME_TO_LEVEL.get(level_name.lower(), logging.WARNING)


def _get_log_format() -> str:
    """Get log format from environment or auto-detect."""
    fmt = os.environ.get("ORTPIN_LOG_FORMAT")
    if fmt:
        return fmt.lower()
    return "human" if sys.stderr.isatty() else "json"


def _create_handler() -> logging.Handler:
    """Create appropriate handler based on format."""
    handler = logging.StreamHandler(sys.stderr)

    if _get_log_format() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(HumanFormatter(use_colors=sys.stderr.isatty()))

    return handler


# Single logger for all of ortpin
logger = logging.getLogger("ortpin")


def _setup_default_handler() -> None:
    """Configure default logging based on environment."""
    # Don't add handler if user already configured logging
    if logger.handlers:
        return

    logger.addHandler(_create_handler())
    logger.setLevel(_get_log_level())


def setup_logging(
    level: str | int = "WARN",
    format: str | None = None,
) -> None:
    """
    Configure ortpin logging.

    Parameters
    ----------
    level : str or int, default "WARN"
        Log level. Can be "DEBUG", "INFO", "WARNING", "ERROR", "FATAL",
        or a logging constant like ``logging.DEBUG``.

    format : str, optional
        Log format. Either "json" or "human". If not specified,
        uses ORTPIN_LOG_FORMAT env var or auto-detects based on TTY.

    Examples
    --------
    Trace every bind and run::

        >>> import ortpin
        >>> ortpin.setup_logging("DEBUG", format="human")
    """
    if isinstance(level, str):
        level = _NAME_TO_LEVEL.get(level.lower(), logging.WARNING)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if format:
        os.environ["ORTPIN_LOG_FORMAT"] = format

    logger.addHandler(_create_handler())
    logger.setLevel(level)


class _ScopedLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that merges extra attributes with scope."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra: dict[str, Any] = dict(self.extra) if self.extra else {}
        if "extra" in kwargs:
            extra.update(kwargs["extra"])
        kwargs["extra"] = extra
        return msg, kwargs


def scoped_logger(scope: str) -> logging.LoggerAdapter:
    """
    Create a logger adapter with a fixed scope.

    Parameters
    ----------
    scope : str
        The scope name ("tensor", "run", "session", "native").

    Returns
    -------
    logging.LoggerAdapter
        A logger adapter that automatically adds scope to all messages.
    """
    return _ScopedLoggerAdapter(logger, {"scope": scope})


# Initialize on import
_setup_default_handler()
