"""Logging system with colored output and file logging"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional


ROOT_LOGGER_NAME = "rigexport"


class ColoredFormatter(logging.Formatter):
    """Colored log output for terminal."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Color a copy so the file handler still sees plain names
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        record.name = f"\033[34m{record.name}{self.RESET}"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs"
) -> logging.Logger:
    """
    Setup logging for an export run.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file name, a timestamp is appended
        log_dir: Directory for log files

    Returns:
        The ``rigexport`` logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))

    if root_logger.handlers:
        return root_logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_format = ColoredFormatter(
        "%(asctime)s │ %(levelname)-8s │ %(name)-24s │ %(message)s",
        datefmt="%H:%M:%S"
    )
    console_handler.setFormatter(console_format)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_path = log_path / f"{log_file}_{timestamp}.log"

        file_handler = logging.FileHandler(file_path)
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_format)
        root_logger.addHandler(file_handler)

        root_logger.info(f"Logging to file: {file_path}")

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger under the rigexport namespace.

    Args:
        name: Component name (e.g., "hierarchy", "motion.extract")

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


@contextmanager
def log_stage(logger: logging.Logger, label: str) -> Iterator[None]:
    """
    Log the start, duration and outcome of one export stage.

    A failing stage is logged with its elapsed time and the exception
    is re-raised unchanged.

    Args:
        logger: Logger to report on
        label: Stage name (e.g., "bind pose", "extraction")
    """
    logger.info(f"{label}...")
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.error(f"{label} failed after {time.perf_counter() - start:.2f}s: {e}")
        raise
    logger.info(f"{label} done in {time.perf_counter() - start:.2f}s")
