"""Logging configuration for the application."""
from __future__ import annotations

import logging
import sys
from typing import Optional

from .settings import get_settings


# PUBLIC_INTERFACE
def setup_logging(level: Optional[str] = None) -> None:
    """Configure application-wide logging.

    Level comes from ``level`` or the LOG_LEVEL setting. Output goes to stdout.
    """
    log_level = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
