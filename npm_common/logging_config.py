# -*- coding: utf-8 -*-
"""
Logging configuration for the Nginx Proxy Manager installer.

Console output uses coloured level tags ([INFO], [OK], [WARNING], [ERROR])
and magenta stage headers. An optional file handler writes one JSON object
per record so an installation can be audited afterwards.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[0;33m"
BLUE = "\033[0;34m"
MAGENTA = "\033[0;35m"
NC = "\033[0m"

_STANDARD_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "message",
}


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON lines with a consistent structure:
    timestamp, level, service, logger, message and any extra fields.
    """

    def __init__(self, service_name: str = "npm-installer"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.uname().nodename

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "hostname": self.hostname,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ConsoleTagFormatter(logging.Formatter):
    """
    Renders records as ``[TAG] message``.

    INFO records carrying ``ok=True`` get the green ``[OK]`` tag and records
    carrying ``step=True`` are rendered as ``==== title ====`` headers.
    """

    LEVEL_TAGS = {
        logging.DEBUG: ("[DEBUG]", NC),
        logging.INFO: ("[INFO]", BLUE),
        logging.WARNING: ("[WARNING]", YELLOW),
        logging.ERROR: ("[ERROR]", RED),
        logging.CRITICAL: ("[ERROR]", RED),
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _paint(self, color: str, text: str) -> str:
        return f"{color}{text}{NC}" if self.use_color else text

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if getattr(record, "step", False):
            return "\n" + self._paint(MAGENTA, f"==== {message} ====")

        if getattr(record, "ok", False):
            tag, color = "[OK]", GREEN
        else:
            tag, color = self.LEVEL_TAGS.get(
                record.levelno, (f"[{record.levelname}]", NC)
            )

        formatted = f"{self._paint(color, tag)} {message}"
        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)
        return formatted


def setup_logging(
    service_name: str = "npm_installer",
    log_level: Optional[str] = None,
    log_file_path: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Set up installer logging on the root logger.

    Args:
        service_name: Name of the logger returned to the caller.
        log_level: Logging level name; defaults to ``$LOG_LEVEL`` or INFO.
        log_file_path: If given, also write JSON lines to this file.
        stream: Console stream, stdout by default.

    Returns:
        The service logger.
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    console_stream = stream if stream is not None else sys.stdout
    use_color = hasattr(console_stream, "isatty") and console_stream.isatty()

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(console_stream)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ConsoleTagFormatter(use_color=use_color))
    root_logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter(service_name))
        root_logger.addHandler(file_handler)
        root_logger.setLevel(min(numeric_level, logging.DEBUG))

    logger = logging.getLogger(service_name)
    logger.debug(
        "Logging initialized",
        extra={"log_level": log_level, "log_file": log_file_path},
    )
    return logger
