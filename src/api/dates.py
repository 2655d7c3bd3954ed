"""
Date/time text conversion for task fields.

All task dates travel on the wire as text in the fixed pattern
``yyyy-MM-dd HH:mm zz`` (for example ``2024-03-15 14:30 GMT``), where the last
token is a short zone abbreviation. This module parses that text into aware
datetimes, re-expresses instants in a requested timezone and renders them back.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Dict, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from .errors import MalformedDateError, UnknownTimezoneError

logger = logging.getLogger(__name__)

DATE_TIME_PATTERN = "yyyy-MM-dd HH:mm zz"

# A timezone argument may be a tzinfo or a name understood by resolve_timezone
TimezoneLike = Union[tzinfo, str]

_DATE_TIME_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2}) ([0-9]{2}):([0-9]{2}) (\S+)", re.ASCII)
_OFFSET_RE = re.compile(r"(?:UTC|GMT)?([+-])([0-9]{2})(?::?([0-9]{2}))?", re.ASCII)

_FIXED_ZONES: Dict[str, tzinfo] = {
    "UTC": timezone.utc,
    "Z": timezone.utc,
    "GMT": timezone(timedelta(0), "GMT"),
}

# Regions chosen for short names that several regions share
_PREFERRED_REGIONS: Dict[str, str] = {
    "WET": "Europe/Lisbon",
    "WEST": "Europe/Lisbon",
    "BST": "Europe/London",
    "CET": "Europe/Paris",
    "CEST": "Europe/Paris",
    "EET": "Europe/Athens",
    "EEST": "Europe/Athens",
    "MSK": "Europe/Moscow",
    "EST": "America/New_York",
    "EDT": "America/New_York",
    "CST": "America/Chicago",
    "CDT": "America/Chicago",
    "MST": "America/Denver",
    "MDT": "America/Denver",
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    "AST": "America/Halifax",
    "ADT": "America/Halifax",
    "AKST": "America/Anchorage",
    "AKDT": "America/Anchorage",
    "HST": "Pacific/Honolulu",
    "IST": "Asia/Kolkata",
    "PKT": "Asia/Karachi",
    "WIB": "Asia/Jakarta",
    "HKT": "Asia/Hong_Kong",
    "JST": "Asia/Tokyo",
    "KST": "Asia/Seoul",
    "AWST": "Australia/Perth",
    "ACST": "Australia/Adelaide",
    "ACDT": "Australia/Adelaide",
    "AEST": "Australia/Sydney",
    "AEDT": "Australia/Sydney",
    "NZST": "Pacific/Auckland",
    "NZDT": "Pacific/Auckland",
    "WAT": "Africa/Lagos",
    "CAT": "Africa/Maputo",
    "EAT": "Africa/Nairobi",
    "SAST": "Africa/Johannesburg",
}


def _fixed_offset(token: str) -> Optional[tzinfo]:
    match = _OFFSET_RE.fullmatch(token)
    if match is None:
        return None
    sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3) or 0)
    if hours > 23 or minutes > 59:
        return None
    delta = timedelta(hours=hours, minutes=minutes)
    # Keep the token as the zone name so the text renders back unchanged
    return timezone(-delta if sign == "-" else delta, token)


def _load_zone(key: str) -> Optional[tzinfo]:
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


@lru_cache(maxsize=1)
def _abbreviation_zones() -> Dict[str, str]:
    """
    Map every short name the tz database currently uses to a region.

    Names are sampled in January and July of this year and last year, so
    both standard and daylight saving names are present. Shared names go to
    the entry in _PREFERRED_REGIONS, otherwise to the first region in
    alphabetical order.
    """
    year = datetime.now(timezone.utc).year
    samples = [datetime(y, m, 15, 12) for y in (year - 1, year) for m in (1, 7)]
    zones: Dict[str, str] = {}
    for key in sorted(available_timezones()):
        zone = _load_zone(key)
        if zone is None:
            continue
        for sample in samples:
            name = sample.replace(tzinfo=zone).tzname()
            # Numeric names such as '+03' are read as offsets
            if name and name[0] not in "+-":
                zones.setdefault(name, key)
    zones.update(_PREFERRED_REGIONS)
    logger.debug("Indexed %d zone abbreviations", len(zones))
    return zones


def _lookup_zone(token: str) -> Optional[tzinfo]:
    """
    Resolve a zone token: fixed names, numeric offsets, short abbreviations,
    then IANA identifiers. Returns None when nothing matches.
    """
    fixed = _FIXED_ZONES.get(token)
    if fixed is not None:
        return fixed
    offset = _fixed_offset(token)
    if offset is not None:
        return offset
    return _load_zone(_abbreviation_zones().get(token, token))


# PUBLIC_INTERFACE
def resolve_timezone(value: TimezoneLike) -> tzinfo:
    """
    Return a tzinfo for ``value``.

    Accepts tzinfo instances as-is, IANA identifiers ('Europe/Paris'), 'UTC',
    'GMT', numeric offsets ('+02:00', 'UTC-05:00') and common short
    abbreviations ('CET', 'PST').

    Raises:
        UnknownTimezoneError: if the name cannot be resolved.
    """
    if isinstance(value, tzinfo):
        return value
    if not isinstance(value, str) or not value.strip():
        raise UnknownTimezoneError(value)
    zone = _lookup_zone(value.strip())
    if zone is None:
        raise UnknownTimezoneError(value)
    return zone


# PUBLIC_INTERFACE
def timezone_name(zone: tzinfo) -> str:
    """Return a display name for ``zone``: the IANA key when it has one."""
    key = getattr(zone, "key", None)
    if key:
        return key
    return zone.tzname(None) or str(zone)


def _match_name(local: datetime, zone: tzinfo, token: str) -> Optional[datetime]:
    """Place ``local`` in ``zone`` on the side of any DST fold whose name is ``token``."""
    for fold in (0, 1):
        aware = local.replace(tzinfo=zone, fold=fold)
        if aware.tzname() == token:
            return aware
    return None


# PUBLIC_INTERFACE
def parse_date_time(text: str, field: Optional[str] = None, preferred: Optional[tzinfo] = None) -> datetime:
    """
    Strictly parse ``text`` in the ``yyyy-MM-dd HH:mm zz`` pattern into an aware datetime.

    When ``preferred`` uses the zone name at that wall time it wins over the
    general lookup, so a shared name such as 'CST' reads back in the zone
    that wrote it.

    Raises:
        MalformedDateError: if the text does not match the pattern, names an
            impossible date or an unknown zone.
    """
    if not isinstance(text, str):
        raise MalformedDateError(text, field, "expected text")
    match = _DATE_TIME_RE.fullmatch(text)
    if match is None:
        raise MalformedDateError(text, field)

    year, month, day, hour, minute = (int(g) for g in match.groups()[:5])
    token = match.group(6)
    try:
        local = datetime(year, month, day, hour, minute)
    except ValueError as exc:
        raise MalformedDateError(text, field, str(exc)) from exc

    if preferred is not None:
        aware = _match_name(local, preferred, token)
        if aware is not None:
            return aware

    zone = _lookup_zone(token)
    if zone is None:
        raise MalformedDateError(text, field, f"unknown zone '{token}'")
    return _match_name(local, zone, token) or local.replace(tzinfo=zone)


# PUBLIC_INTERFACE
def format_date_time(value: datetime) -> str:
    """Render an aware datetime in the ``yyyy-MM-dd HH:mm zz`` pattern, using its own zone."""
    offset = value.utcoffset()
    if offset is None:
        raise ValueError("Cannot format a naive datetime; an instant needs its offset or zone")
    abbreviation = value.tzname() or timezone(offset).tzname(None)
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d} {abbreviation}"
    )


# PUBLIC_INTERFACE
def parse_and_convert(tz: TimezoneLike, text: Optional[str], field: Optional[str] = None) -> Optional[datetime]:
    """
    Parse date text and re-express the same instant in ``tz``.

    Returns None when ``text`` is None. The result carries a fixed UTC offset.
    The zone name in ``text`` is matched against ``tz`` first.

    Raises:
        MalformedDateError: if ``text`` is present but malformed.
        UnknownTimezoneError: if ``tz`` is a name that cannot be resolved.
    """
    if text is None:
        return None
    zone = resolve_timezone(tz)
    converted = parse_date_time(text, field, preferred=zone).astimezone(zone)
    return converted.replace(tzinfo=timezone(converted.utcoffset()))


# PUBLIC_INTERFACE
def convert_and_format(value: datetime, tz: TimezoneLike) -> str:
    """
    Re-express the instant ``value`` in ``tz`` and render it as text.

    Raises:
        ValueError: if ``value`` is naive.
        UnknownTimezoneError: if ``tz`` is a name that cannot be resolved.
    """
    if value.utcoffset() is None:
        raise ValueError("Cannot convert a naive datetime; an instant needs its offset or zone")
    zone = resolve_timezone(tz)
    return format_date_time(value.astimezone(zone))
