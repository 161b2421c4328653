"""UTC time helpers. All timestamps are stored as naive UTC datetimes."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC; naive values are assumed to be UTC already"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_appointment(date_str: str, time_str: str) -> datetime:
    """Combine YYYY-MM-DD and HH:MM into a naive UTC datetime"""
    return datetime.strptime(f"{date_str} {time_str}", "%Y-%m-%d %H:%M")
