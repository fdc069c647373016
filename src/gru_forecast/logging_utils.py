"""Loguru sink setup for scripts."""

import os
import sys
from typing import Optional

from loguru import logger


def configure_logging(level: Optional[str] = None) -> None:
    """Replace loguru's default sink with a single stderr sink."""
    level = (level or os.getenv("GRU_FORECAST_LOG_LEVEL", "INFO")).upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}",
    )
    logger.debug(f"Logging configured at level {level}")
