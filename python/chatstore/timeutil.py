"""Timestamp helpers.

The store keeps timestamps at millisecond precision and the driver hands them
back as naive UTC datetimes. Values that are later used as clustering keys
must round-trip exactly, so everything written is truncated to milliseconds
and everything read is made timezone-aware.
"""

from datetime import UTC, datetime


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values; convert aware values to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utcnow() -> datetime:
    """Current time, UTC, at store precision."""
    return truncate_to_millis(datetime.now(UTC))


def as_stored(value: datetime) -> datetime:
    """Normalize a caller-supplied timestamp to what the store will keep."""
    return truncate_to_millis(as_utc(value))


def from_row(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None
