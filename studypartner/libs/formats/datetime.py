from datetime import date, datetime, timedelta, timezone
from typing import Any


def now() -> datetime:
    """Current UTC time without tzinfo.
    Every timestamp column in the project is stored as naive UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_tzinfo() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return now().date()


def date_key(d: date) -> str:
    """Calendar key used by study-session analytics (YYYY-MM-DD)."""
    return d.isoformat()


def days_ago(days: int, ref: date | None = None) -> date:
    return (ref or today()) - timedelta(days=days)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


async def serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()

    if isinstance(obj, dict):
        return {k: await serialize(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [await serialize(v) for v in obj]

    return obj
