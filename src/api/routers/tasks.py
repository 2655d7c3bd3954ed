from __future__ import annotations

import logging
from datetime import tzinfo
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dates import resolve_timezone, timezone_name
from ..schemas import LocalizedDates, TaskDto, TaskIn
from ..settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def default_timezone() -> tzinfo:
    """Resolve DEFAULT_TIMEZONE once per process."""
    return resolve_timezone(get_settings().default_timezone)


def _get_timezone(
    timezone: Optional[str] = Query(
        None,
        description="Client timezone, e.g. 'Europe/Paris', 'UTC' or '+02:00'. Defaults to DEFAULT_TIMEZONE",
    ),
) -> tzinfo:
    """
    Dependency resolving the requested timezone. Unknown names raise
    UnknownTimezoneError, answered with 400 by the app.
    """
    if timezone:
        return resolve_timezone(timezone)
    return default_timezone()


# PUBLIC_INTERFACE
@router.post(
    "/render",
    response_model=TaskDto,
    summary="Render Task",
    description="Render a canonical task (dates as instants) for a client in the requested timezone.",
    responses={
        200: {"description": "Task rendered"},
        400: {"description": "Unknown timezone"},
        422: {"description": "Validation error"},
    },
)
def render_task(payload: TaskIn, zone: tzinfo = Depends(_get_timezone)) -> TaskDto:
    """
    Convert every date of the task to the client's timezone.
    """
    return TaskDto.from_entity(payload.to_entity(), zone)


# PUBLIC_INTERFACE
@router.post(
    "/convert",
    response_model=TaskDto,
    summary="Convert Task",
    description="Re-render the dates of a client task in the requested timezone.",
    responses={
        200: {"description": "Task converted"},
        400: {"description": "Unknown timezone"},
        422: {"description": "Malformed date or validation error"},
    },
)
def convert_task(payload: TaskDto, zone: tzinfo = Depends(_get_timezone)) -> TaskDto:
    """
    Parse each present date and render the same instant in the requested timezone.
    """
    return payload.converted_to(zone)


# PUBLIC_INTERFACE
@router.post(
    "/localize",
    response_model=LocalizedDates,
    summary="Localize Task Dates",
    description=(
        "Parse the dates of a client task into ISO8601 datetimes in the requested timezone.\n\n"
        "With strict=true (default) a malformed date fails the request with 422. "
        "With strict=false every date is attempted and failures are listed in 'errors'."
    ),
    responses={
        200: {"description": "Dates parsed"},
        400: {"description": "Unknown timezone"},
        422: {"description": "Malformed date or validation error"},
    },
)
def localize_task(
    payload: TaskDto,
    strict: bool = Query(True, description="Fail on the first malformed date"),
    zone: tzinfo = Depends(_get_timezone),
) -> LocalizedDates:
    """
    Return the task's dates as instants in the requested timezone.
    """
    localized = payload.localize_dates(zone, strict=strict)
    if not localized.ok:
        logger.info(
            "Task %s localized to %s with malformed fields: %s",
            payload.id,
            timezone_name(zone),
            ", ".join(sorted(localized.errors)),
        )
    return localized
