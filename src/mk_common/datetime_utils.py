"""UTC datetime utilities."""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def combine_date_time(day: date | None, hhmm: str | None) -> datetime | None:
    """Join a calendar date and an optional "HH:MM" wall-clock string into UTC.

    A missing date yields None (open-ended window). A malformed time is
    treated as midnight, matching how listings were entered historically.
    """
    if day is None:
        return None
    hour, minute = 0, 0
    if hhmm:
        parts = hhmm.strip().split(":")
        try:
            hour = int(parts[0])
            minute = int(parts[1]) if len(parts) > 1 else 0
        except ValueError:
            hour, minute = 0, 0
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            hour, minute = 0, 0
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)
