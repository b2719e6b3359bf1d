"""
Logging configuration for rodcache.

Provides a centralized logger that can be configured via environment variables.
"""
import logging
import os
import sys

# Get log level from environment variable (default: INFO)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("rodcache")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# Prevent propagation to root logger (avoid duplicate logs)
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (will be appended to 'rodcache')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"rodcache.{name}")
    return logger


def set_level(level: str) -> None:
    """Change the level of the package logger at runtime (used by the CLI -v flag)."""
    logger.setLevel(level.upper())
