"""Time utilities for timezone-aware UTC datetimes and timestamp-based ids."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime for defaults and onupdate hooks."""
    return datetime.now(UTC)


def utc_now_iso() -> str:
    """ISO-8601 string with millisecond precision and a trailing Z."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_millis_id() -> str:
    return str(int(utc_now().timestamp() * 1000))
