from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List

from .dates import resolve_timezone
from .errors import UnknownTimezoneError

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - DEFAULT_TIMEZONE: timezone used when a request names none. Default 'UTC'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name (default: INFO)
    """

    default_timezone: str
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_timezone(value: str) -> str:
    name = value.strip()
    try:
        resolve_timezone(name)
    except UnknownTimezoneError:
        logger.warning("DEFAULT_TIMEZONE %r is not a known timezone; using UTC", name)
        return "UTC"
    return name


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        # Fallback to INFO if unsupported
        log_level = "INFO"

    return Settings(
        default_timezone=_parse_timezone(_get_env("DEFAULT_TIMEZONE", "UTC")),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=log_level,
    )
