"""
Logging setup for CommitScope.

Console output is split by level (INFO/DEBUG to stdout, WARNING+ to stderr)
and an optional rotating file handler writes one log file per context
(``api``, ``cli``, ``collect``).
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from commitscope.config import Settings, settings

STANDARD_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class _MaxLevelFilter(logging.Filter):
    """Pass records strictly below a level."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def _build_formatter(config: Settings) -> logging.Formatter:
    if config.log_format == "json":
        return JsonFormatter()
    return logging.Formatter(STANDARD_FORMAT)


def setup_logging(context: str = "app", config: Optional[Settings] = None) -> None:
    """
    Configure root logging for a process.

    Args:
        context: Name of the running surface, used as the log file name
        config: Settings to read from (defaults to the global settings)

    Raises:
        PermissionError: If the log directory cannot be created
    """
    config = config or settings
    root = logging.getLogger()
    root.setLevel(config.log_level.upper())

    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = _build_formatter(config)

    if config.log_console_enabled:
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.addFilter(_MaxLevelFilter(logging.WARNING))
        stdout_handler.setFormatter(formatter)
        root.addHandler(stdout_handler)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)
        stderr_handler.setFormatter(formatter)
        root.addHandler(stderr_handler)

    if config.log_file_enabled:
        log_dir = config.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / f"{context}.log",
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Per-request HTTP logs are noisy at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
