"""revtrail utility modules.

Provides centralized utilities for:
- datetime: Consistent datetime conversion and serialization
"""

from revtrail.utils.datetime import (
    EPOCH,
    deserialize_datetime,
    from_unix_seconds,
    serialize_datetime,
)

__all__ = ["EPOCH", "serialize_datetime", "deserialize_datetime", "from_unix_seconds"]
