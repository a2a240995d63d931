"""
Timestamp conversion and rendering utilities.

Windows artifacts record times as FILETIME values: 100-nanosecond intervals
since 1601-01-01 00:00:00 UTC. A FILETIME of zero decodes to the epoch
itself, which the rest of the code treats as the null sentinel.

Rendering is split by audience:
- Human-facing sinks and console output use a strftime pattern
  (DEFAULT_TIME_FORMAT unless the operator overrides it).
- Machine-sortable sinks use ISO 8601 via ``to_iso``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

# Floor value a decoder reports for "no timestamp recorded"
NULL_TIMESTAMP = FILETIME_EPOCH

DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
PRECISE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

# Sentinel accepted by format_timestamp() to request ISO 8601 output
ISO_FORMAT = "iso"


def filetime_to_datetime(filetime: int) -> Optional[datetime]:
    """
    Convert a FILETIME integer to a timezone-aware datetime.

    Args:
        filetime: 100ns intervals since 1601-01-01 UTC

    Returns:
        datetime in UTC, or None for zero/negative/out-of-range values

    Example:
        >>> filetime_to_datetime(132514800000000000)
        datetime.datetime(2020, 12, 3, 14, 40, tzinfo=datetime.timezone.utc)
    """
    if not filetime or filetime <= 0:
        return None
    try:
        return FILETIME_EPOCH + timedelta(microseconds=filetime // 10)
    except OverflowError:
        return None


def unix_to_datetime(seconds: Union[int, float]) -> Optional[datetime]:
    """Convert Unix epoch seconds to datetime, or None if invalid/zero."""
    if not seconds or seconds <= 0:
        return None

    try:
        if seconds > 32503680000:  # Beyond year 3000
            return None
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None


def is_null_timestamp(value: Optional[datetime]) -> bool:
    """Return True for missing values and the FILETIME floor."""
    if value is None:
        return True
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value <= NULL_TIMESTAMP


def to_iso(value: Optional[datetime]) -> str:
    """Render a datetime as ISO 8601, empty for missing values."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def format_timestamp(
    value: Optional[datetime],
    time_format: str = DEFAULT_TIME_FORMAT,
    *,
    local_time: bool = False,
) -> str:
    """
    Render a datetime for output.

    Args:
        value: Datetime to render (naive values are assumed UTC)
        time_format: strftime pattern, or ISO_FORMAT for ISO 8601
        local_time: Convert to the host timezone before rendering

    Returns:
        Rendered string, empty for missing values
    """
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if local_time:
        value = value.astimezone()
    if time_format == ISO_FORMAT:
        return to_iso(value)
    return value.strftime(time_format)

