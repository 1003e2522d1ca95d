"""
Structured logging (OpenTelemetry-compliant).

Every record is first mapped onto the OpenTelemetry Logging Data Model
(timestamp, severityText, body, attributes, resource). ``JsonFormatter``
prints that mapping as one JSON line; ``HumanFormatter`` renders the same
fields for a terminal.

Usage::

    from ._logging import scoped_logger

    logger = scoped_logger("engine")
    logger.debug("Tokenizer handle destroyed", extra={"engine": "huggingface"})

Environment::

    TOKBRIDGE_LOG_LEVEL=trace|debug|info|warn|error|fatal|off (default: warn)
    TOKBRIDGE_LOG_FORMAT=json|human (default: human if tty, json if piped)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import MutableMapping
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Any

__all__ = ["logger", "setup_logging", "scoped_logger"]

SERVICE_NAME = "tokbridge"

_OFF = logging.CRITICAL + 10

_LEVELS_BY_NAME = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "err": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "off": _OFF,
    "none": _OFF,
}

_SEVERITY_TEXT = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}

# DEBUG/ERROR/FATAL carry code.filepath and code.lineno
_WITH_LOCATION = frozenset({logging.DEBUG, logging.ERROR, logging.CRITICAL})

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_BUILTINS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
    "scope",
}


def _package_version() -> str:
    try:
        return get_version(SERVICE_NAME)
    except PackageNotFoundError:
        return "0.0.0"


def parse_level(level: str | int, default: int = logging.INFO) -> int:
    """Map an OpenTelemetry-style level name (or a logging constant) to a level."""
    if isinstance(level, int):
        return level
    return _LEVELS_BY_NAME.get(level.strip().lower(), default)


def _infer_scope(logger_name: str) -> str:
    """Derive a scope from the logger name when none was attached."""
    if not logger_name:
        return SERVICE_NAME
    for needles, scope in (
        (("native", "ffi"), "native"),
        (("engine", "huggingface"), "engine"),
        (("token",), "tokenizer"),
    ):
        if any(needle in logger_name for needle in needles):
            return scope
    return logger_name.rsplit(".", 1)[-1]


def _strip_path_prefix(filepath: str) -> str:
    """Shorten a source path to its package-relative part."""
    for prefix in (f"{SERVICE_NAME}/", "src/"):
        head, sep, tail = filepath.partition(prefix)
        if sep:
            return tail
    return filepath


def _rfc3339_nanos(created: float) -> str:
    # LogRecord.created has microsecond precision; pad to nine digits
    dt = datetime.fromtimestamp(created, tz=timezone.utc)
    return f"{dt:%Y-%m-%dT%H:%M:%S}.{dt.microsecond * 1000:09d}Z"


def _otel_record(record: logging.LogRecord, version: str) -> dict[str, Any]:
    """Map a LogRecord onto the OpenTelemetry log data model."""
    attributes: dict[str, Any] = {
        "scope": getattr(record, "scope", None) or _infer_scope(record.name)
    }
    attributes.update(
        (key, value)
        for key, value in vars(record).items()
        if key not in _RECORD_BUILTINS and not key.startswith("_")
    )
    if record.levelno in _WITH_LOCATION:
        attributes["code.filepath"] = _strip_path_prefix(record.pathname)
        attributes["code.lineno"] = record.lineno
    return {
        "timestamp": _rfc3339_nanos(record.created),
        "severityText": _SEVERITY_TEXT.get(record.levelno, "INFO"),
        "body": record.getMessage(),
        "attributes": attributes,
        "resource": {"service.name": SERVICE_NAME, "service.version": version},
    }


class JsonFormatter(logging.Formatter):
    """One compact JSON object per record."""

    def __init__(self) -> None:
        super().__init__()
        self._version = _package_version()

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(
            _otel_record(record, self._version), separators=(",", ":"), default=str
        )


class HumanFormatter(logging.Formatter):
    """
    Terminal rendering of the same fields::

        12:04:05 DEBUG [tokenizer] Tokenizer created (huggingface) [tokenizer/tokenizer.py:141]
    """

    _RESET = "\x1b[0m"
    _DIM = "\x1b[2m"
    _CYAN = "\x1b[36m"
    # Checked in order; first threshold the level reaches wins
    _LEVEL_COLORS = ((logging.ERROR, "\x1b[31m"), (logging.WARNING, "\x1b[33m"))

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self._use_colors = use_colors

    def _paint(self, text: str, color: str) -> str:
        if not self._use_colors or not color:
            return text
        return f"{color}{text}{self._RESET}"

    def _level_color(self, levelno: int) -> str:
        if levelno <= logging.DEBUG:
            return self._DIM
        for threshold, color in self._LEVEL_COLORS:
            if levelno >= threshold:
                return color
        return ""

    def format(self, record: logging.LogRecord) -> str:
        otel = _otel_record(record, "")
        attributes = otel["attributes"]
        clock = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S")

        line = (
            f"{clock} "
            + self._paint(f"{otel['severityText']:<5} ", self._level_color(record.levelno))
            + self._paint(f"[{attributes['scope']}] ", self._CYAN)
            + otel["body"]
        )
        if attributes.get("engine"):
            line += f" ({attributes['engine']})"
        if "code.filepath" in attributes:
            line += self._paint(
                f" [{attributes['code.filepath']}:{attributes['code.lineno']}]", self._DIM
            )
        return line


def _get_log_level() -> int:
    """Level from TOKBRIDGE_LOG_LEVEL; a library stays quiet by default."""
    return parse_level(os.environ.get("TOKBRIDGE_LOG_LEVEL", "warn"), default=logging.WARNING)


def _get_log_format() -> str:
    """Format from TOKBRIDGE_LOG_FORMAT, else human on a TTY and json when piped."""
    fmt = os.environ.get("TOKBRIDGE_LOG_FORMAT")
    if fmt:
        return fmt.lower()
    return "human" if sys.stderr.isatty() else "json"


def _create_handler(fmt: str | None = None) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if (fmt or _get_log_format()) == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(HumanFormatter(use_colors=sys.stderr.isatty()))
    return handler


# Parent of every tokbridge.* logger
logger = logging.getLogger(SERVICE_NAME)


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
) -> None:
    """
    Configure tokbridge logging.

    Replaces any handlers on the ``tokbridge`` logger with a single stderr
    handler.

    Parameters
    ----------
    level : str or int, default "INFO"
        "trace", "debug", "info", "warn", "error", "fatal", "off", or a
        logging constant like ``logging.DEBUG``.

    format : str, optional
        "json" or "human". Defaults to TOKBRIDGE_LOG_FORMAT, then TTY
        detection. An explicit format is also exported as
        TOKBRIDGE_LOG_FORMAT.

    Examples
    --------
        >>> import tokbridge
        >>> tokbridge.setup_logging("debug", format="json")
    """
    if format:
        format = format.lower()
        os.environ["TOKBRIDGE_LOG_FORMAT"] = format

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(_create_handler(format))
    logger.setLevel(parse_level(level))


class _ScopedLoggerAdapter(logging.LoggerAdapter):
    """Adds a fixed ``scope`` to every record, keeping per-call ``extra``."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs


def scoped_logger(scope: str) -> logging.LoggerAdapter:
    """
    Logger adapter with a fixed scope ("engine", "native", "tokenizer").

    Examples
    --------
    ::

        log = scoped_logger("native")
        log.debug("Loaded native tokenizer library", extra={"path": path})
    """
    return _ScopedLoggerAdapter(logger, {"scope": scope})


# Install the environment-driven handler unless the application already did
if not logger.handlers:
    logger.addHandler(_create_handler())
    logger.setLevel(_get_log_level())
