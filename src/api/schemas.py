from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from .dates import TimezoneLike, convert_and_format, parse_and_convert, resolve_timezone, timezone_name
from .errors import MalformedDateError
from .models import TaskEntity

logger = logging.getLogger(__name__)

# Coerces an assigned id the way validate_assignment will
_ID_ADAPTER = TypeAdapter(Optional[int])

# Field order used when walking the four task dates: (attribute, wire name)
DATE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("created_at", "createdAt"),
    ("updated_at", "updatedAt"),
    ("due_date", "dueDate"),
    ("resolved_at", "resolvedAt"),
)


def _validate_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


def _ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken as UTC; aware ones keep their offset."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# PUBLIC_INTERFACE
class LocalizedDates(BaseModel):
    """
    Result of parsing all task dates into one timezone.

    Each field is reported independently: a malformed field yields None and an
    entry in ``errors`` keyed by its wire name, without affecting the others.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timezone: str = Field(..., description="Timezone the dates were converted to")
    created_at: Optional[datetime] = Field(default=None, description="Creation time in the timezone")
    updated_at: Optional[datetime] = Field(default=None, description="Last update time in the timezone")
    due_date: Optional[datetime] = Field(default=None, description="Due time in the timezone")
    resolved_at: Optional[datetime] = Field(default=None, description="Resolution time in the timezone")
    errors: Dict[str, str] = Field(default_factory=dict, description="Per-field parse errors by wire name")

    @property
    def ok(self) -> bool:
        return not self.errors


# PUBLIC_INTERFACE
class TaskDto(BaseModel):
    """
    Task representation for external clients.

    Dates are text in the ``yyyy-MM-dd HH:mm zz`` pattern. The DTO converts
    between that text and canonical instants in a client's timezone, in both
    directions. It can be built with no arguments and populated field by field,
    as the JSON layer does, or in one step with ``from_entity``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": 42,
                "createdAt": "2024-03-15 14:30 GMT",
                "updatedAt": "2024-03-16 09:05 GMT",
                "dueDate": "2024-04-01 12:00 GMT",
                "resolvedAt": None,
                "title": "Replace kitchen tiles",
                "description": "Grey, 20x20",
                "priority": "HIGH",
                "status": "OPEN",
            }
        },
    )

    id: Optional[int] = Field(default=None, description="Unique identifier, immutable once assigned")
    created_at: Optional[str] = Field(default=None, description="When the task was created")
    updated_at: Optional[str] = Field(default=None, description="When the task was last updated")
    due_date: Optional[str] = Field(default=None, description="When the task is expected to be done")
    resolved_at: Optional[str] = Field(default=None, description="When the task was done")
    title: Optional[str] = Field(default=None, description="Short title of the task", max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Optional[str] = Field(default=None, description="Priority level")
    status: Optional[str] = Field(default=None, description="Task status")

    # Timezone used by the last convert_all_dates call; never serialized
    _timezone: Optional[tzinfo] = PrivateAttr(default=None)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        return _validate_title(v)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and self.id is not None and _ID_ADAPTER.validate_python(value) != self.id:
            raise ValueError(f"id is immutable once assigned (current: {self.id})")
        super().__setattr__(name, value)

    @property
    def timezone(self) -> Optional[tzinfo]:
        """Timezone the dates were last rendered in, or None before any conversion."""
        return self._timezone

    # Text -> instant

    def created_at_converted(self, tz: TimezoneLike) -> Optional[datetime]:
        """Parse the creation date and re-express it in ``tz``."""
        return parse_and_convert(tz, self.created_at, field="createdAt")

    def updated_at_converted(self, tz: TimezoneLike) -> Optional[datetime]:
        """Parse the last update date and re-express it in ``tz``."""
        return parse_and_convert(tz, self.updated_at, field="updatedAt")

    def due_date_converted(self, tz: TimezoneLike) -> Optional[datetime]:
        """Parse the due date and re-express it in ``tz``."""
        return parse_and_convert(tz, self.due_date, field="dueDate")

    def resolved_at_converted(self, tz: TimezoneLike) -> Optional[datetime]:
        """Parse the resolution date and re-express it in ``tz``."""
        return parse_and_convert(tz, self.resolved_at, field="resolvedAt")

    def localize_dates(self, tz: TimezoneLike, strict: bool = False) -> LocalizedDates:
        """
        Parse all four dates into ``tz``.

        With ``strict`` the first malformed field raises MalformedDateError.
        Otherwise every field is attempted and failures are collected in
        ``LocalizedDates.errors``.
        """
        zone = resolve_timezone(tz)
        accessors: Dict[str, Callable[[TimezoneLike], Optional[datetime]]] = {
            "created_at": self.created_at_converted,
            "updated_at": self.updated_at_converted,
            "due_date": self.due_date_converted,
            "resolved_at": self.resolved_at_converted,
        }
        values: Dict[str, Optional[datetime]] = {}
        errors: Dict[str, str] = {}
        for attr, wire_name in DATE_FIELDS:
            try:
                values[attr] = accessors[attr](zone)
            except MalformedDateError as exc:
                if strict:
                    raise
                values[attr] = None
                errors[wire_name] = str(exc)
        if errors:
            logger.debug("Task %s has malformed dates: %s", self.id, sorted(errors))
        return LocalizedDates(timezone=timezone_name(zone), errors=errors, **values)

    # Instant -> text

    def set_created_at_converted(self, created_at: datetime, tz: TimezoneLike) -> None:
        """Render the creation instant in ``tz`` and store it."""
        self.created_at = convert_and_format(created_at, tz)

    def set_updated_at_converted(self, updated_at: datetime, tz: TimezoneLike) -> None:
        """Render the last update instant in ``tz`` and store it."""
        self.updated_at = convert_and_format(updated_at, tz)

    def set_due_date_converted(self, due_date: Optional[datetime], tz: TimezoneLike) -> None:
        """Render the due instant in ``tz``; an absent due date clears the field."""
        self.due_date = None if due_date is None else convert_and_format(due_date, tz)

    def set_resolved_at_converted(self, resolved_at: Optional[datetime], tz: TimezoneLike) -> None:
        """Render the resolution instant in ``tz``; when absent the field keeps its value."""
        if resolved_at is not None:
            self.resolved_at = convert_and_format(resolved_at, tz)

    def convert_all_dates(self, task: TaskEntity, tz: TimezoneLike) -> None:
        """
        Render every date of ``task`` in ``tz`` into this DTO.

        Fields are converted in order; an error stops the remaining ones.
        """
        zone = resolve_timezone(tz)
        self._timezone = zone
        self.set_created_at_converted(task["created_at"], zone)
        self.set_updated_at_converted(task["updated_at"], zone)
        self.set_due_date_converted(task.get("due_date"), zone)
        self.set_resolved_at_converted(task.get("resolved_at"), zone)
        logger.debug("Converted dates of task %s to %s", task.get("id"), timezone_name(zone))

    def converted_to(self, tz: TimezoneLike) -> "TaskDto":
        """
        Return a copy with every present date re-rendered in ``tz``.

        Raises:
            MalformedDateError: on the first date that cannot be parsed.
        """
        zone = resolve_timezone(tz)
        localized = self.localize_dates(zone, strict=True)
        copy = self.model_copy()
        for attr, _ in DATE_FIELDS:
            instant = getattr(localized, attr)
            if instant is not None:
                setattr(copy, attr, convert_and_format(instant, zone))
        copy._timezone = zone
        return copy

    @classmethod
    def from_entity(cls, task: TaskEntity, tz: TimezoneLike) -> "TaskDto":
        """Build a DTO from a canonical task with its dates rendered in ``tz``."""
        dto = cls()
        dto.id = task["id"]
        dto.title = task["title"]
        dto.description = task.get("description")
        dto.priority = task.get("priority")
        dto.status = task.get("status")
        dto.convert_all_dates(task, tz)
        return dto


# PUBLIC_INTERFACE
class TaskIn(BaseModel):
    """
    Canonical task as submitted by a trusted caller, with dates as instants.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 42,
                "title": "Replace kitchen tiles",
                "description": "Grey, 20x20",
                "priority": "HIGH",
                "status": "OPEN",
                "createdAt": "2024-03-15T14:30:00Z",
                "updatedAt": "2024-03-16T09:05:00+00:00",
                "dueDate": "2024-04-01T12:00:00Z",
                "resolvedAt": None,
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title of the task", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Optional[str] = Field(default=None, description="Priority level")
    status: Optional[str] = Field(default=None, description="Task status")
    created_at: datetime = Field(..., description="Creation instant; naive values are taken as UTC")
    updated_at: datetime = Field(..., description="Last update instant; naive values are taken as UTC")
    due_date: Optional[datetime] = Field(default=None, description="Due instant")
    resolved_at: Optional[datetime] = Field(default=None, description="Resolution instant")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        if v is None:
            raise ValueError("title is required")
        return _validate_title(v)

    @field_validator("created_at", "updated_at", "due_date", "resolved_at")
    @classmethod
    def make_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_aware(v)

    def to_entity(self) -> TaskEntity:
        """Return the canonical entity for this payload."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "due_date": self.due_date,
            "resolved_at": self.resolved_at,
        }
