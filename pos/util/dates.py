from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from pos.config import settings
from pos.errors import ValidationError

PERIODS = ("today", "yesterday", "7days", "30days", "all", "custom")


def _aware(dt: datetime, tz: ZoneInfo) -> datetime:
    return dt.replace(tzinfo=tz) if dt.tzinfo is None else dt


def date_window(
    period: str | None = "all",
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    now: datetime | None = None,
) -> tuple[datetime | None, datetime | None, bool]:
    """
    Resolve a named relative range or an explicit start/end into UTC bounds.

    Returns (lower, upper, upper_inclusive). Either bound may be None for an
    open side; explicit ranges include `end`, named ranges exclude it.
    Naive datetimes are read in the restaurant's timezone (settings.TZ).
    """
    tz = ZoneInfo(settings.TZ)
    if (start is None) != (end is None):
        raise ValidationError("'start' and 'end' must be given together")
    if start is not None:
        lo, hi = _aware(start, tz), _aware(end, tz)
        if lo > hi:
            raise ValidationError("'start' must not be after 'end'")
        return lo.astimezone(timezone.utc), hi.astimezone(timezone.utc), True

    period = period or "all"
    if period not in PERIODS:
        raise ValidationError(f"invalid period: {period}")
    if period == "all":
        return None, None, False
    if period == "custom":
        raise ValidationError("custom period requires 'start' and 'end'")

    now = (now or datetime.now(timezone.utc)).astimezone(tz)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    hi = None
    if period == "today":
        lo = midnight
    elif period == "yesterday":
        lo, hi = midnight - timedelta(days=1), midnight
    elif period == "7days":
        lo = now - timedelta(days=7)
    else:
        lo = now - timedelta(days=30)
    return lo.astimezone(timezone.utc), (hi.astimezone(timezone.utc) if hi else None), False


def window_clauses(column, period=None, start=None, end=None, *, now=None) -> list:
    """SQLAlchemy filter clauses restricting `column` to the resolved window."""
    lo, hi, inclusive = date_window(period, start, end, now=now)
    clauses = []
    if lo is not None:
        clauses.append(column >= lo)
    if hi is not None:
        clauses.append(column <= hi if inclusive else column < hi)
    return clauses
