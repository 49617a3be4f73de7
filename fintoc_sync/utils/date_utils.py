"""Date manipulation utilities"""

import re
from datetime import datetime, timedelta, timezone

from fintoc_sync.domain.exceptions import InvalidSyncWindowError
from fintoc_sync.domain.models import SyncWindow

# humantime's unit table; units are case-sensitive ("M" is months, "m" minutes)
DURATION_UNITS = {
    "usec": timedelta(microseconds=1),
    "us": timedelta(microseconds=1),
    "millis": timedelta(milliseconds=1),
    "msec": timedelta(milliseconds=1),
    "ms": timedelta(milliseconds=1),
    "seconds": timedelta(seconds=1),
    "second": timedelta(seconds=1),
    "secs": timedelta(seconds=1),
    "sec": timedelta(seconds=1),
    "s": timedelta(seconds=1),
    "minutes": timedelta(minutes=1),
    "minute": timedelta(minutes=1),
    "mins": timedelta(minutes=1),
    "min": timedelta(minutes=1),
    "m": timedelta(minutes=1),
    "hours": timedelta(hours=1),
    "hour": timedelta(hours=1),
    "hrs": timedelta(hours=1),
    "hr": timedelta(hours=1),
    "h": timedelta(hours=1),
    "days": timedelta(days=1),
    "day": timedelta(days=1),
    "d": timedelta(days=1),
    "weeks": timedelta(weeks=1),
    "week": timedelta(weeks=1),
    "w": timedelta(weeks=1),
    "months": timedelta(seconds=2_630_016),
    "month": timedelta(seconds=2_630_016),
    "M": timedelta(seconds=2_630_016),
    "years": timedelta(seconds=31_557_600),
    "year": timedelta(seconds=31_557_600),
    "y": timedelta(seconds=31_557_600),
}

DURATION_TOKEN = re.compile(r"(\d+)\s*([a-zA-Z]+)")


def parse_duration(text: str) -> timedelta:
    """
    Parse a humantime duration such as "1d", "12h", "1M" or "1week 2days".

    Raises:
        InvalidSyncWindowError: Empty string, unknown unit or stray characters
    """
    cleaned = text.strip()
    if not cleaned:
        raise InvalidSyncWindowError("Duration must not be empty")

    total = timedelta()
    position = 0
    for match in DURATION_TOKEN.finditer(cleaned):
        if cleaned[position:match.start()].strip():
            raise InvalidSyncWindowError(f"Invalid duration: {text!r}")
        value, unit = match.groups()
        if unit not in DURATION_UNITS:
            raise InvalidSyncWindowError(f"Unknown duration unit {unit!r} in {text!r}")
        total += int(value) * DURATION_UNITS[unit]
        position = match.end()

    if position == 0 or cleaned[position:].strip():
        raise InvalidSyncWindowError(f"Invalid duration: {text!r}")

    return total


def resolve_sync_window(
    lookback: timedelta,
    now: datetime | None = None,
    end_offset: timedelta | None = None,
) -> SyncWindow:
    """
    Time range to fetch movements for.

    end = now (minus end_offset when given), start = now - lookback.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    end = now - end_offset if end_offset else now
    start = now - lookback

    if start > end:
        raise InvalidSyncWindowError(
            f"End offset {end_offset} reaches past the lookback of {lookback}"
        )

    return SyncWindow(start=start, end=end)
