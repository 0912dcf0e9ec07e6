from datetime import date, datetime, time, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_naive_to_local(dt: datetime, tz: ZoneInfo) -> datetime:
    return dt.replace(tzinfo=timezone.utc).astimezone(tz)


def to_instant(value: Any) -> datetime:
    """Coerce a stored time value to a naive UTC datetime.

    Accepts native datetimes (naive values are taken as UTC), dates (midnight
    UTC), ISO 8601 strings, epoch milliseconds, and timestamp objects exposing
    either ``to_datetime()`` or ``seconds``/``nanoseconds``.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value
        return to_utc_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_instant(datetime.fromisoformat(text))
        except ValueError as exc:
            raise ValueError(f"unparseable timestamp: {value!r}") from exc
    if isinstance(value, bool):
        raise TypeError("boolean is not a timestamp")
    if isinstance(value, (int, float)):
        return datetime(1970, 1, 1) + timedelta(milliseconds=value)
    if hasattr(value, "to_datetime"):
        return to_instant(value.to_datetime())
    if hasattr(value, "seconds") and hasattr(value, "nanoseconds"):
        return datetime(1970, 1, 1) + timedelta(
            seconds=int(value.seconds),
            microseconds=int(value.nanoseconds) // 1000,
        )
    raise TypeError(f"unsupported timestamp type: {type(value).__name__}")


def day_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Widen ``[start, end]`` to whole calendar days (naive UTC)."""
    day_start = datetime.combine(start.date(), time.min)
    day_end = datetime.combine(end.date(), time.min) + timedelta(days=1)
    return day_start, day_end
