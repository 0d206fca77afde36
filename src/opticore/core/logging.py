"""Structured logging for optical graph simulation.

Console output for interactive runs and optional JSON lines files so that
diagnostics raised during an analysis pass (stale nodes, apodized rays,
positioning fallbacks, damage threshold violations) can be post-processed.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, structured data merged at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data = getattr(record, "extra_data", None)
        if data:
            for key, value in data.items():
                entry.setdefault(key, value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(log_path: Path | None = None, level: int | str = logging.INFO) -> None:
    """Configure the root logger for a simulation run.

    Replaces existing root handlers with a console handler and, if
    ``log_path`` is given, a JSON lines file handler.

    Args:
        log_path: Optional path for JSON lines log file
        level: Logging level, as number or name
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(console)

    if log_path:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        json_handler = logging.FileHandler(log_path, encoding="utf-8")
        json_handler.setFormatter(JSONFormatter())
        root.addHandler(json_handler)


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for a module (usually ``__name__``)."""
    return StructuredLogger(logging.getLogger(name))


class StructuredLogger:
    """Logger taking a message plus a dict of structured data.

    A logger can carry fixed context (for example the node a message belongs
    to); it is merged into the structured data of every record.
    """

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        self.logger = logger
        self.context = dict(context or {})

    def bind(self, **context: Any) -> StructuredLogger:
        """Logger adding ``context`` to every record."""
        return StructuredLogger(self.logger, {**self.context, **context})

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def _log(self, level: int, msg: str, data: dict[str, Any] | None, exc_info: bool = False) -> None:
        if not self.logger.isEnabledFor(level):
            return
        payload = {**self.context, **(data or {})}
        self.logger.log(level, msg, extra={"extra_data": payload} if payload else None, exc_info=exc_info)

    def debug(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.DEBUG, msg, data)

    def info(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.INFO, msg, data)

    def warning(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.WARNING, msg, data)

    def error(self, msg: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.ERROR, msg, data)

    def exception(self, msg: str, data: dict[str, Any] | None = None) -> None:
        """Error level record with the active exception attached."""
        self._log(logging.ERROR, msg, data, exc_info=True)


__all__ = [
    "JSONFormatter",
    "setup_logging",
    "get_logger",
    "StructuredLogger",
]
