"""Time source shared by the services.  Always returns aware UTC datetimes."""

from datetime import datetime, timezone


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    MySQL DATETIME and SQLite both hand back naive values even for
    ``DateTime(timezone=True)`` columns.  Everything is written in UTC, so a
    naive value read back is UTC.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
