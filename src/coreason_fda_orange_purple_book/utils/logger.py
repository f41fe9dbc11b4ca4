"""Centralized logging configuration using loguru."""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> None:
    """
    Configure loguru sinks.

    Stderr is always used because stdout carries the MCP stdio transport.

    Args:
        level: Console log level. Defaults to the LOG_LEVEL environment variable or INFO.
        log_dir: Directory for the JSON log file. No file sink is added when omitted.
    """
    # Remove default handler
    logger.remove()

    # Sink 1: Stderr (Console)
    logger.add(
        sys.stderr,
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format=LOG_FORMAT,
    )

    # Sink 2: File (JSON)
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "app.log",
            rotation="500 MB",
            retention="10 days",
            serialize=True,
            enqueue=True,
            level="DEBUG",  # Capture more details in file
        )


# Export the configured logger
__all__ = ["logger", "setup_logging"]
