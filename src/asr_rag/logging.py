"""Logging setup for asr-rag.

Everything logs under the ``asr_rag`` logger. Console output goes to
stderr through rich (or as JSON lines with ``--json-logs``) so that
stdout carries nothing but command results. Structured fields are passed
with ``extra=`` and rendered after the message.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "asr_rag"

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class LogLevel(IntEnum):
    """How much the console shows."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3

    @property
    def stdlib_level(self) -> int:
        return (logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG)[self]


@dataclass
class LogConfig:
    """Logging options chosen on the command line.

    Attributes:
        level: Console verbosity
        log_file: Extra file receiving every record at DEBUG
        json_format: Emit one JSON object per line instead of text
    """

    level: LogLevel = LogLevel.NORMAL
    log_file: Path | None = None
    json_format: bool = False


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to a record via ``extra=``."""
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg, fields, exc."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        fields = {k: _jsonable(v) for k, v in record_fields(record).items()}
        if fields:
            entry["fields"] = fields
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry)


class FieldsFormatter(logging.Formatter):
    """Plain text with ``key=value`` fields appended to the message."""

    def __init__(self, fmt: str = "%(message)s", datefmt: str | None = None):
        super().__init__(fmt=fmt, datefmt=datefmt)

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = record_fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_current = LogConfig()
_configured = False


def _console_handler(config: LogConfig) -> logging.Handler:
    if config.json_format:
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(FieldsFormatter())
    handler.setLevel(config.level.stdlib_level)
    return handler


def _file_handler(path: Path, json_format: bool) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(JsonFormatter() if json_format else FieldsFormatter(FILE_FORMAT))
    return handler


def configure_logging(config: LogConfig | None = None) -> None:
    """Install handlers on the ``asr_rag`` logger, replacing earlier ones.

    Args:
        config: Options to apply; the last applied options when omitted
    """
    global _current, _configured

    if config is not None:
        _current = config

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.addHandler(_console_handler(_current))
    if _current.log_file:
        root.addHandler(_file_handler(_current.log_file, _current.json_format))
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(_current.level.stdlib_level)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


def set_verbosity(level: LogLevel) -> None:
    _current.level = level
    configure_logging()


@contextmanager
def log_operation(logger: logging.Logger, operation: str, **fields: Any) -> Iterator[dict[str, Any]]:
    """Log the start and outcome of an operation, with its duration.

    The yielded dict can be filled with result fields that are added to
    the completion record.

    Example:
        with log_operation(logger, "seed corpus", entries=3) as outcome:
            outcome["seeded"] = seed()
    """
    outcome: dict[str, Any] = {}
    started = time.monotonic()
    logger.info(f"{operation}: started", extra=fields)

    try:
        yield outcome
    except Exception as e:
        logger.info(
            f"{operation}: failed",
            extra={**fields, "error_type": type(e).__name__, "seconds": round(time.monotonic() - started, 2)},
        )
        raise

    logger.info(
        f"{operation}: done",
        extra={**fields, **outcome, "seconds": round(time.monotonic() - started, 2)},
    )
