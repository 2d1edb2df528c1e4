"""
Logging setup and the stabilized-letter log.
"""

import os
import time
import logging
import logging.handlers
from functools import wraps

from fingerspell.core.events import Events


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console and optional rotating file logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class PredictionLogger:
    """Records every stabilized letter and logs it on the 'letters' logger."""

    def __init__(self, event_bus=None):
        self.logger = logging.getLogger("letters")
        self._history = []
        if event_bus is not None:
            self.attach(event_bus)

    def attach(self, event_bus):
        event_bus.subscribe(Events.STABLE_LABEL, self._on_stable)
        event_bus.subscribe(Events.PREDICTIONS_RESET, self._on_reset)

    def _on_stable(self, label, **kwargs):
        self.log_letter(label)

    def _on_reset(self, **kwargs):
        self._history.clear()
        self.logger.info("Predictions cleared")

    def log_letter(self, letter):
        self._history.append({"timestamp": time.time(), "letter": letter})
        self.logger.info("Letter: %s | Spelled so far: %s", letter, self.spelled)

    @property
    def spelled(self) -> str:
        """Concatenation of all stabilized letters."""
        return "".join(entry["letter"] for entry in self._history)

    def get_history(self, last_n=None):
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()


def log_timing(func):
    """Decorator to log function execution time at debug level."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
