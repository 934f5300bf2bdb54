"""
Logging configuration for the notification parser.
Message bodies are only ever logged as short previews.
"""
import logging
import os
import sys
from typing import Optional

PREVIEW_LENGTH = 300


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env LOG_LEVEL or INFO.

    Returns:
        Configured logger instance
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if not isinstance(getattr(logging, log_level, None), int):
        log_level = "INFO"

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level))

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, log_level))

        formatter = logging.Formatter(
            fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def preview(text: Optional[str], length: int = PREVIEW_LENGTH) -> str:
    """Collapse whitespace and cut text down to a loggable preview."""
    if not text:
        return ""
    return " ".join(text[:length].split())
