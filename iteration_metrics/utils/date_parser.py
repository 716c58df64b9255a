"""Timestamp parsing utilities for iteration exports and cache metadata."""

from datetime import UTC, date, datetime


def parse_timestamp(value: str | date | datetime) -> datetime:
    """Parse a timestamp into a timezone-aware UTC datetime.

    Supports:
    - ISO dates: 2024-01-01 (midnight UTC)
    - ISO datetimes: 2024-01-01T10:00:00Z, 2024-01-01T10:00:00.123+02:00
    - Naive ISO datetimes, which are taken to be UTC
    - ``date`` and ``datetime`` objects

    Args:
        value: Timestamp to parse

    Returns:
        Datetime in UTC

    Raises:
        ValueError: If the value is not a recognized timestamp
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if not isinstance(value, str):
        raise ValueError(f"Unable to parse timestamp of type {type(value).__name__}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        pass

    # Common non-ISO formats seen in hand-written exports
    formats = [
        "%Y/%m/%d",  # 2024/01/01
        "%Y-%m-%d %H:%M:%S",  # 2024-01-01 10:00:00
        "%B %d, %Y",  # January 1, 2024
        "%b %d, %Y",  # Jan 1, 2024
    ]

    for fmt in formats:
        try:
            return ensure_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue

    raise ValueError(
        f"Unable to parse timestamp '{value}'. "
        f"Supported formats include: YYYY-MM-DD, YYYY-MM-DDTHH:MM:SSZ, "
        f"YYYY-MM-DDTHH:MM:SS+HH:MM, 'January 1, 2024'"
    )


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` converted to UTC, treating naive values as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with a ``Z`` suffix."""
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)
