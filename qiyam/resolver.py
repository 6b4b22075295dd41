"""Pick the calendar day whose prayer times describe the current night."""

import dataclasses
import datetime
import logging
from typing import Optional

from qiyam.errors import MissingFieldError
from qiyam.night import Convention, NightWindow, compute_window
from qiyam.prayer_api import fetch_prayer_times
from qiyam.times import parse_time_of_day

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class NightTimings:
    """The raw times of one night, anchored to the date the night began on."""

    anchor_date: datetime.date
    maghrib: str
    isha: str
    fajr: str
    timings: dict
    hijri: dict = dataclasses.field(default_factory=dict)
    timezone: Optional[str] = None

    def window(self, convention=Convention.STANDARD, tz=None) -> NightWindow:
        return compute_window(
            self.maghrib, self.isha, self.fajr, convention, self.anchor_date, tz
        )


def _required(timings: dict, name: str, fallback: str = None) -> str:
    value = timings.get(name)
    if not value and fallback:
        value = timings.get(fallback)
    if not value:
        raise MissingFieldError(name)
    return value


def resolve_night_timings(
    lat: float,
    lng: float,
    method_id: int,
    now: datetime.datetime,
    fetch=fetch_prayer_times,
    tz=None,
) -> NightTimings:
    """
    Fetch the prayer times of the night that is current at `now`.

    A provider day runs midnight to midnight but a night spans two days. Before
    today's Fajr the user is still inside the night that began yesterday, so
    yesterday's times are fetched and anchored to yesterday; otherwise today's
    are used. `now` must be naive when tz is None, and aware in tz otherwise.

    Raises MissingFieldError when Fajr, Isha, or both Maghrib and Sunset are
    absent, MalformedTimeError for unparseable times, and lets the provider's
    DataUnavailableError propagate.
    """
    today = now.date()
    result = fetch(lat, lng, today, method_id)
    today_fajr = parse_time_of_day(_required(result["timings"], "Fajr"), today, tz)

    anchor_date = today
    if now < today_fajr:
        anchor_date = today - datetime.timedelta(days=1)
        logger.debug("Before Fajr at %s, using the night that began %s", today_fajr, anchor_date)
        result = fetch(lat, lng, anchor_date, method_id)

    timings = result["timings"]
    return NightTimings(
        anchor_date=anchor_date,
        maghrib=_required(timings, "Maghrib", fallback="Sunset"),
        isha=_required(timings, "Isha"),
        fajr=_required(timings, "Fajr"),
        timings=timings,
        hijri=result.get("hijri") or {},
        timezone=result.get("timezone"),
    )
