"""Logging configuration."""
import logging
import os
import sys
from pathlib import Path
from typing import Optional


_initialized = False

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _get_log_level(level: Optional[str] = None) -> int:
    """Resolve a level name, falling back to LOG_LEVEL or INFO."""
    level_str = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_str, logging.INFO)


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> logging.Logger:
    """Configure the package logger once.

    Handlers are attached to the ``gptbridge`` logger so every module logger
    created with ``logging.getLogger(__name__)`` inherits them.

    Args:
        level: Log level name (default: LOG_LEVEL env or INFO)
        log_file: Optional file to mirror console output to

    Returns:
        The configured package logger
    """
    global _initialized

    root = logging.getLogger("gptbridge")
    root.setLevel(_get_log_level(level))

    if not _initialized:
        root.handlers.clear()
        root.propagate = False
        formatter = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # Reduce noise from httpx and the scheduler
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("apscheduler").setLevel(logging.WARNING)

        _initialized = True

    return root
