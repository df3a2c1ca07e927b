"""Time utilities for timezone-aware UTC datetimes and UTC calendar dates."""

from datetime import UTC, date, datetime, timedelta


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime for defaults and onupdate hooks."""
    return datetime.now(UTC)


def utc_today() -> date:
    return utc_now().date()


def utc_tomorrow() -> date:
    return utc_today() + timedelta(days=1)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
