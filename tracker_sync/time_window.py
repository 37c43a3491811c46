"""Time zone handling for day-aligned query windows.

Turns a user-supplied local date/time and a zone (IANA name or fixed
offset) into an absolute UTC instant.
"""

import os
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidTimeZoneError, TimeZoneResolutionError, ValidationError
from .models import LocalDateTime, TimeZoneSpec

OFFSET_PATTERN = re.compile(r'^([+-])(\d{2}):?(\d{2})$')
MAX_RESOLVE_ITERATIONS = 5


def _system_time_zone() -> str:
    """Best-effort IANA name of the process's own time zone."""
    tz_env = os.environ.get('TZ', '').lstrip(':')
    if tz_env:
        try:
            ZoneInfo(tz_env)
            return tz_env
        except (ZoneInfoNotFoundError, ValueError):
            pass

    try:
        target = os.path.realpath('/etc/localtime')
    except OSError:
        return 'UTC'

    marker = 'zoneinfo' + os.sep
    if marker in target:
        return target.split(marker, 1)[1]
    return 'UTC'


def _describe_offset(minutes: int) -> str:
    sign = '+' if minutes >= 0 else '-'
    hours, mins = divmod(abs(minutes), 60)
    return f"UTC{sign}{hours:02d}:{mins:02d}"


def resolve_time_zone(value: Optional[str] = None) -> Tuple[TimeZoneSpec, str]:
    """Resolve a --timezone value into a zone spec and a display label.

    Args:
        value: None or "local" for the system zone, a "+HH:MM"/"-HHMM"
            offset, or an IANA identifier such as "Asia/Tokyo"

    Returns:
        Tuple of (TimeZoneSpec, label)

    Raises:
        InvalidTimeZoneError: If the value is not a known zone or offset
    """
    if not value or value.lower() == 'local':
        identifier = _system_time_zone()
        return TimeZoneSpec.iana(identifier), identifier

    match = OFFSET_PATTERN.match(value)
    if match:
        sign, raw_hours, raw_minutes = match.groups()
        total = int(raw_hours) * 60 + int(raw_minutes)
        minutes = -total if sign == '-' else total
        return TimeZoneSpec.offset(minutes), _describe_offset(minutes)

    try:
        datetime.now(ZoneInfo(value)).isoformat()
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise InvalidTimeZoneError(
            f"Invalid --timezone value: {value}. Use an IANA zone (e.g., Asia/Tokyo) "
            f"or a numeric offset such as +0900."
        ) from e

    return TimeZoneSpec.iana(value), value


def parse_local_datetime_input(value: str) -> LocalDateTime:
    """Parse YYYYMMDD or YYYYMMDDHHMM into a LocalDateTime.

    Non-digit separators are ignored, so "2024-05-30" is accepted.
    A date-only value means midnight.

    Raises:
        ValidationError: On wrong length, out-of-range fields or a date
            that does not exist in the calendar
    """
    digits = re.sub(r'\D', '', value or '')

    if len(digits) not in (8, 12):
        raise ValidationError("Invalid --window-boundary. Use YYYYMMDD or YYYYMMDDHHMM (digits only).")

    year = int(digits[0:4])
    month = int(digits[4:6])
    day = int(digits[6:8])
    hour = int(digits[8:10]) if len(digits) == 12 else 0
    minute = int(digits[10:12]) if len(digits) == 12 else 0

    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 01 and 12 for --window-boundary.")
    if not 1 <= day <= 31:
        raise ValidationError("Day must be between 01 and 31 for --window-boundary.")
    if not 0 <= hour <= 23:
        raise ValidationError("Hour must be between 00 and 23 for --window-boundary.")
    if not 0 <= minute <= 59:
        raise ValidationError("Minute must be between 00 and 59 for --window-boundary.")

    try:
        datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError as e:
        raise ValidationError(
            "Invalid calendar date provided for --window-boundary. Check the day/month combination."
        ) from e

    return LocalDateTime(year=year, month=month, day=day, hour=hour, minute=minute)


def _wall_clock_as_utc(value: LocalDateTime) -> datetime:
    return datetime(value.year, value.month, value.day, value.hour, value.minute, tzinfo=timezone.utc)


def _resolve_for_offset(value: LocalDateTime, offset_minutes: int) -> datetime:
    sign = '+' if offset_minutes >= 0 else '-'
    hours, minutes = divmod(abs(offset_minutes), 60)
    iso = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:00{sign}{hours:02d}:{minutes:02d}"
    )
    try:
        return datetime.fromisoformat(iso).astimezone(timezone.utc)
    except ValueError as e:
        raise TimeZoneResolutionError("Failed to parse --window-boundary with the provided offset.") from e


def _resolve_for_iana_zone(value: LocalDateTime, identifier: str) -> datetime:
    # Fixed-point search: start from the UTC instant with the same wall-clock
    # digits and shift by however far its rendering in the zone is off.
    zone = ZoneInfo(identifier)
    target = _wall_clock_as_utc(value)
    guess = target

    for _ in range(MAX_RESOLVE_ITERATIONS):
        rendered = guess.astimezone(zone).replace(second=0, microsecond=0, tzinfo=timezone.utc)
        diff = target - rendered
        if diff == timedelta(0):
            return guess
        guess += diff

    raise TimeZoneResolutionError(f'Failed to resolve --window-boundary for timezone "{identifier}".')


def convert_local_datetime_to_utc(value: LocalDateTime, spec: TimeZoneSpec) -> datetime:
    """Convert a wall-clock time in the given zone to an aware UTC datetime.

    Args:
        value: Local date and time
        spec: Zone the wall-clock time is expressed in

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        TimeZoneResolutionError: If no UTC instant renders as the given
            wall-clock time (e.g. inside a DST gap)
    """
    if spec.kind == 'offset':
        return _resolve_for_offset(value, spec.minutes)
    return _resolve_for_iana_zone(value, spec.identifier)


def resolve_commit_window(window_days: int, boundary: Optional[datetime] = None,
                          now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Return (since, until) for a window of N days ending at the boundary.

    The boundary defaults to the current instant.
    """
    until = boundary or now or datetime.now(timezone.utc)
    return until - timedelta(days=window_days), until


def format_utc(value: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"
