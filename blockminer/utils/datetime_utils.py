"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Make a datetime timezone-aware.

    Naive values are treated as UTC (some drivers drop tzinfo on read).

    Args:
        value: Datetime to normalize

    Returns:
        Datetime in UTC with timezone awareness
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
