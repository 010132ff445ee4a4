"""Epoch-second helpers. All stored instants are UTC at second resolution."""

from datetime import datetime, timezone


def from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def to_epoch(value: datetime) -> int:
    # SQLite hands back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)
