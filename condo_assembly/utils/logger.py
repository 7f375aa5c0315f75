"""
Logging configuration
"""
import logging
import sys
from condo_assembly.config import get_settings

settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance.

    Handlers are attached once per logger name, so repeated imports of a
    service module never duplicate output lines.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    return logger


def mask_token(token: str | None, visible: int = 6) -> str:
    """Shorten an opaque token for log lines (check-in and session tokens)"""
    if not token:
        return "<none>"
    return f"{token[:visible]}..."
