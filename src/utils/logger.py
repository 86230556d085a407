"""
Unified logging setup for the batch sender.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_DIR = Path("logs")
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(trace_id)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_SIZE_MB = 10
BACKUP_COUNT = 5

_loggers: dict[str, logging.Logger] = {}
_file_handler_added = False


class TraceIdFilter(logging.Filter):
    """Filter that adds trace_id of the active batch element to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            from utils.trace_context import get_trace_id

            record.trace_id = get_trace_id() or "-"
        return True


_trace_filter = TraceIdFilter()


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Get or create a logger."""
    if name in _loggers:
        return _loggers[name]
    logger = logging.getLogger(name)
    logger.setLevel(level)
    _loggers[name] = logger
    return logger


def setup_file_logging(
    filename: str = "batch_sender.log",
    level: int = logging.INFO,
    use_rotation: bool = True,
) -> Path:
    """Set up file logging once per process.

    Returns:
        Path of the log file
    """
    global _file_handler_added

    log_path = Path(filename)
    if log_path.parent == Path("."):
        log_path = LOG_DIR / log_path.name

    if _file_handler_added:
        return log_path

    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if use_rotation:
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=MAX_LOG_SIZE_MB * 1024 * 1024,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
    else:
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")

    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(_trace_filter)
    root_logger.addHandler(file_handler)

    _file_handler_added = True
    return log_path



def setup_console_logging(level: int = logging.INFO, stream=None) -> logging.Handler:
    """Attach a trace-stamped console handler to the root logger.

    Calling it again returns the handler already attached to the same stream.
    """
    stream = stream or sys.stdout
    root_logger = logging.getLogger()

    for handler in root_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is stream:
            return handler

    root_logger.setLevel(level)
    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    console_handler.addFilter(_trace_filter)
    root_logger.addHandler(console_handler)
    return console_handler
