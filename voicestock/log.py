"""Loguru sink setup shared by the CLI and scripts."""

import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}"


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at `level`."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


def mask_key(api_key: str) -> str:
    """Show only the first 8 characters of a secret."""
    if not api_key:
        return "<none>"
    return api_key[:8] + "..."
