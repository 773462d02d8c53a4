"""
Date Utilities
==============

Block timestamps arrive as Unix seconds. Records are keyed by the UTC
calendar date of the block, so conversions live here.
"""

from datetime import UTC, datetime


def from_unix_seconds(timestamp: int) -> datetime:
    """
    Convert a Unix timestamp in seconds to a timezone-aware UTC datetime.

    Args:
        timestamp: Unix timestamp in seconds (as reported by block headers)

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.fromtimestamp(timestamp, tz=UTC)


def to_iso_date(timestamp: int) -> str:
    """
    Convert a Unix timestamp in seconds to an ISO 8601 date (YYYY-MM-DD).

    Args:
        timestamp: Unix timestamp in seconds

    Returns:
        Date string in UTC, e.g. "2022-05-09"
    """
    return from_unix_seconds(timestamp).strftime("%Y-%m-%d")
