"""
Logging configuration for the StorySlides backend.

This module sets up structured logging for the application with proper
formatting, levels, and output configuration.
"""

import logging
import sys
import os
from datetime import datetime
from typing import Optional
from storyslides.core.config import settings


def setup_logger(
    name: str = "storyslides",
    level: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up and configure a logger instance with console and (best-effort) file output.
    File output is only attempted when LOG_DIR is configured, and falls back to
    console-only when the file handler cannot be created (e.g., read-only FS).
    """
    # Determine logging level
    if level is None:
        level = "DEBUG" if settings.DEBUG else "INFO"

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Avoid adding multiple handlers to the same logger
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - "
            "%(funcName)s:%(lineno)d - %(message)s"
        )
    formatter = logging.Formatter(format_string)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_DIR:
        try:
            os.makedirs(settings.LOG_DIR, exist_ok=True)

            today = datetime.now().strftime("%Y-%m-%d")
            log_file = os.path.join(settings.LOG_DIR, f"storyslides_{today}.log")
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(getattr(logging, level.upper()))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError:
            # If we cannot write logs to disk, proceed with console-only logging
            logger.warning(f"Could not open log directory {settings.LOG_DIR}; console logging only")

    return logger


# Create default logger instance
logger = setup_logger()
