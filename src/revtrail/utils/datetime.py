"""Centralized datetime handling for git timestamps.

All datetimes produced by revtrail are timezone-aware UTC. Git reports
author dates as Unix seconds (``%at``); these helpers convert them and
serialize results consistently.

Design decisions:
- Always serialize to ISO 8601 format with UTC timezone
- Deserialize from Unix timestamps only, the form git reports
- Naive datetimes are assumed to be UTC (not local time)
"""

from datetime import datetime, timezone
from typing import Union

__all__ = [
    "EPOCH",
    "serialize_datetime",
    "deserialize_datetime",
    "from_unix_seconds",
]

# Timestamp given to tags that do not point at a commit
EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def serialize_datetime(dt: datetime) -> str:
    """Serialize datetime to ISO 8601 string with UTC timezone.

    Args:
        dt: Datetime to serialize. If naive (no timezone), assumes UTC.

    Returns:
        ISO 8601 formatted string (e.g., "2024-12-14T10:30:00+00:00")

    Examples:
        >>> from datetime import datetime, timezone
        >>> serialize_datetime(datetime(2024, 12, 14, 10, 30, tzinfo=timezone.utc))
        '2024-12-14T10:30:00+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def deserialize_datetime(value: Union[float, int]) -> datetime:
    """Deserialize datetime from a Unix timestamp.

    Args:
        value: Unix timestamp as int or float

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If value is out of the platform's timestamp range.
        TypeError: If value is not an int or float.

    Examples:
        >>> deserialize_datetime(1702551000)
        datetime.datetime(2023, 12, 14, 10, 50, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OSError, OverflowError, ValueError) as e:
            raise ValueError(f"Cannot parse Unix timestamp: {value!r}") from e

    raise TypeError(
        f"Cannot deserialize datetime from {type(value).__name__}: {value!r}. "
        f"Expected int or float (Unix timestamp)."
    )


def from_unix_seconds(text: str) -> datetime:
    """Convert git's ``%at`` output (integer seconds) to a UTC datetime.

    Raises:
        ValueError: If text is not an integer number of seconds.
    """
    try:
        seconds = int(text.strip())
    except ValueError as e:
        raise ValueError(f"Not a Unix timestamp: {text!r}") from e
    return deserialize_datetime(seconds)
