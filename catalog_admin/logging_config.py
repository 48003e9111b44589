"""Logging configuration for the catalog admin client.

Console output for the operator plus a JSONL event file, so every
remote operation outcome can be replayed after the fact.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from catalog_admin.config import LOG_DIR

__all__ = [
    "setup_logging",
    "get_logger",
    "log_admin_event",
    "JSONLFileHandler",
    "ROOT_LOGGER",
]

ROOT_LOGGER = "catalog_admin"


class JSONLFileHandler(logging.Handler):
    """Writes one JSON object per record, one file per day."""

    def __init__(self, log_dir: Path, prefix: str = "admin"):
        super().__init__()
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix

    def _get_log_file(self) -> Path:
        today = datetime.now().strftime("%Y%m%d")
        return self.log_dir / f"{self.prefix}_{today}.jsonl"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: Dict[str, Any] = {
                "timestamp": datetime.now().isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            event_type = getattr(record, "event_type", None)
            if event_type:
                entry["event_type"] = event_type
            extra_data = getattr(record, "extra_data", None)
            if extra_data:
                entry.update(extra_data)

            with open(self._get_log_file(), "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        except Exception:
            self.handleError(record)


class ColoredConsoleFormatter(logging.Formatter):
    """Colors the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str, use_color: bool):
        super().__init__(fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().format(record)
        # Format a copy so other handlers still see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Set up logging for the admin client.

    Args:
        level: Logging level (default: INFO)
        log_to_file: Whether to log to JSONL file
        log_to_console: Whether to log to console (stderr)
        log_dir: Custom log directory (default: config.LOG_DIR). If it can't
            be created, file logging is skipped with a warning

    Returns:
        Configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG if log_to_file else level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    if log_to_console:
        stream = sys.stderr
        console_handler = logging.StreamHandler(stream)
        console_handler.setLevel(level)
        use_color = hasattr(stream, "isatty") and stream.isatty()
        console_handler.setFormatter(
            ColoredConsoleFormatter(
                "%(asctime)s [%(levelname)s] %(message)s",
                datefmt="%H:%M:%S",
                use_color=use_color,
            )
        )
        logger.addHandler(console_handler)

    if log_to_file:
        target = log_dir or LOG_DIR
        try:
            file_handler = JSONLFileHandler(target)
        except OSError as e:
            logger.warning(f"File logging disabled, cannot write to {target}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)  # Capture all levels to file
            logger.addHandler(file_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Get a logger under the package namespace."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_admin_event(
    event_type: str,
    data: Dict[str, Any],
    level: int = logging.INFO,
    logger_name: str = "events",
) -> None:
    """Log a structured admin event.

    Args:
        event_type: Type of event (e.g., 'products_fetched', 'operation_failed')
        data: Event-specific fields; 'message' becomes the log message
        level: Log level
        logger_name: Logger to use (under the package namespace)
    """
    logger = get_logger(logger_name)
    if not logger.isEnabledFor(level):
        return

    record = logger.makeRecord(
        logger.name,
        level,
        "(catalog_admin)",
        0,
        data.get("message", event_type),
        (),
        None,
    )
    record.event_type = event_type
    record.extra_data = {k: v for k, v in data.items() if k != "message"}

    logger.handle(record)
