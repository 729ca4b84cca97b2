"""
Logging
=======

Structured logging for the simulation core.

All loggers live under the ``spaceflight`` namespace. Nothing is emitted
until ``configure_logging`` installs handlers.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

ROOT_LOGGER_NAME = "spaceflight"

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'getMessage', 'taskName',
}


class StructuredFormatter(logging.Formatter):
    """
    Formatter producing either JSON lines or a human-readable line.

    Values passed through ``extra=`` are appended to the record.
    """

    def __init__(self, fmt_type: str = "human", include_extra: bool = True):
        self.fmt_type = fmt_type
        self.include_extra = include_extra
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in _RESERVED_ATTRS:
                    continue
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)

            if extra_fields:
                log_data["extra"] = extra_fields

        if self.fmt_type == "json":
            return json.dumps(log_data, ensure_ascii=False)
        return self._format_human_readable(log_data)

    def _format_human_readable(self, log_data: Dict[str, Any]) -> str:
        timestamp = log_data["timestamp"][:19]
        level = log_data["level"]
        formatted = f"{timestamp} {level:<8} {log_data['logger']:<28} {log_data['message']}"

        if level == "DEBUG":
            formatted += f" [{log_data['module']}:{log_data['function']}:{log_data['line']}]"

        if "exception" in log_data:
            formatted += f"\n{log_data['exception']}"

        if log_data.get("extra"):
            extra_str = ", ".join(f"{k}={v}" for k, v in log_data["extra"].items())
            formatted += f" | {extra_str}"

        return formatted


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the package namespace.

    Args:
        name: Component name, e.g. ``"propagator"``

    Returns:
        Logger named ``spaceflight.<name>``
    """
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(log_level: str = "INFO",
                      json_format: bool = False,
                      log_file: Optional[Union[str, Path]] = None,
                      max_file_size: int = 10 * 1024 * 1024,
                      backup_count: int = 3) -> logging.Logger:
    """
    Install handlers on the package logger.

    Args:
        log_level: Minimum log level to output
        json_format: Emit JSON lines instead of human-readable text
        log_file: Optional rotating log file path
        max_file_size: Maximum size of each log file
        backup_count: Number of rotated files to keep

    Returns:
        The configured package logger
    """
    level = getattr(logging, log_level.upper())
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    fmt_type = "json" if json_format else "human"

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(StructuredFormatter(fmt_type))
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter(fmt_type))
        logger.addHandler(file_handler)

    logger.debug("Logging configured", extra={"log_level": log_level, "json": json_format})
    return logger
