"""Parse provider time-of-day strings and format instants for display."""

import datetime
import re

from qiyam.errors import MalformedTimeError

TIME_FORMAT_12H = "12h"
TIME_FORMAT_24H = "24h"
TIME_FORMATS = (TIME_FORMAT_12H, TIME_FORMAT_24H)

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{1,2})$")


def parse_time_of_day(raw: str, anchor_date: datetime.date, tz=None) -> datetime.datetime:
    """
    Anchor a provider time string such as '05:12' or '05:12 (GST)' to a date.

    Anything after the first whitespace is dropped. The result has seconds and
    microseconds set to zero. It is naive unless a pytz timezone is given, in
    which case it is localized to that zone. No day rollover happens here.
    Raises MalformedTimeError for anything that is not a valid HH:MM.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedTimeError(raw)
    token = raw.split()[0]
    match = _HHMM_RE.match(token)
    if not match:
        raise MalformedTimeError(raw)
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise MalformedTimeError(raw)

    dt = datetime.datetime.combine(anchor_date, datetime.time(hour, minute))
    if tz is not None:
        return tz.localize(dt)
    return dt


def format_time(dt: datetime.datetime, time_format: str = TIME_FORMAT_24H) -> str:
    """Render an instant as '05:07' (24h) or '5:07 AM' (12h)."""
    if time_format == TIME_FORMAT_24H:
        return f"{dt.hour:02d}:{dt.minute:02d}"
    period = "PM" if dt.hour >= 12 else "AM"
    return f"{dt.hour % 12 or 12}:{dt.minute:02d} {period}"


def format_duration(minutes: int) -> str:
    """Render a duration in minutes as '45m', '3h' or '9h 30m'."""
    hours, mins = divmod(max(int(minutes), 0), 60)
    if hours == 0:
        return f"{mins}m"
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def shift(dt: datetime.datetime, delta: datetime.timedelta) -> datetime.datetime:
    """Add a timedelta, re-normalizing pytz-aware datetimes across DST changes."""
    shifted = dt + delta
    tz = dt.tzinfo
    if tz is not None and hasattr(tz, "normalize"):
        return tz.normalize(shifted)
    return shifted
