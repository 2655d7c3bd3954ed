from __future__ import annotations

from typing import Optional


class DateConversionError(ValueError):
    """Base class for task date conversion failures."""


# PUBLIC_INTERFACE
class MalformedDateError(DateConversionError):
    """Raised when date text does not match the ``yyyy-MM-dd HH:mm zz`` pattern."""

    def __init__(self, value: object, field: Optional[str] = None, reason: Optional[str] = None) -> None:
        self.value = value
        self.field = field
        self.reason = reason
        where = f" for field '{field}'" if field else ""
        message = f"Malformed date{where}: {value!r}. Expected format 'yyyy-MM-dd HH:mm zz'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# PUBLIC_INTERFACE
class UnknownTimezoneError(DateConversionError):
    """Raised when a timezone name cannot be resolved."""

    def __init__(self, name: object) -> None:
        self.name = name
        super().__init__(f"Unknown timezone: {name!r}")
