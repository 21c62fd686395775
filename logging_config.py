"""Logging setup shared by every module of the proxy."""

import logging
import sys

from config import settings


def setup_logging() -> logging.Logger:
    """Build the service logger with a single stdout handler"""
    logger = logging.getLogger("ikea_lookup")

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    if not logger.handlers:
        logger.addHandler(console_handler)

    return logger


logger = setup_logging()


def excerpt(value: str, max_length: int = settings.ERROR_EXCERPT_LENGTH) -> str:
    """Truncate an upstream body for log lines and error messages"""
    if not value:
        return ""
    return value[:max_length]
