"""
Night window calculation.

The night runs from a convention-dependent start (Maghrib or Isha) to Fajr.
The Qiyam window is its last third, measured backwards from Fajr.
"""

import dataclasses
import datetime
import enum
import logging
import math
import warnings
from typing import Optional

from qiyam.errors import InvalidWindowWarning
from qiyam.times import parse_time_of_day, shift

logger = logging.getLogger(__name__)

ONE_DAY = datetime.timedelta(days=1)
MAX_NIGHT_MINUTES = 18 * 60
MIN_LAST_THIRD_MINUTES = 60


class Convention(str, enum.Enum):
    STANDARD = "standard"        # Maghrib -> Fajr
    ALTERNATIVE = "alternative"  # Isha -> Fajr

    @property
    def anchor_label(self) -> str:
        return "Maghrib" if self is Convention.STANDARD else "Isha"


@dataclasses.dataclass
class NightWindow:
    start: datetime.datetime          # last-third boundary
    end: datetime.datetime            # Fajr
    night_duration_minutes: int
    last_third_minutes: int
    middle_of_night: datetime.datetime
    night_start: datetime.datetime    # Maghrib or Isha, per convention
    convention: Convention
    valid: bool = True
    warning: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class WindowCheck:
    valid: bool
    warning: Optional[str] = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_window(
    maghrib: str,
    isha: str,
    fajr: str,
    convention=Convention.STANDARD,
    anchor_date: datetime.date = None,
    tz=None,
) -> NightWindow:
    """
    Compute the night window from raw provider strings.

    All three times are anchored to anchor_date (today when omitted). Fajr is
    moved to the next day whenever it is not after Maghrib, and under the
    alternative convention Isha is moved likewise when it falls before
    Maghrib. The window is returned even when validation flags it; in that
    case valid/warning are set and an InvalidWindowWarning is issued.
    Raises MalformedTimeError if any string cannot be parsed.
    """
    convention = Convention(convention)
    if anchor_date is None:
        anchor_date = datetime.date.today()
    next_date = anchor_date + ONE_DAY

    maghrib_dt = parse_time_of_day(maghrib, anchor_date, tz)
    isha_dt = parse_time_of_day(isha, anchor_date, tz)
    fajr_dt = parse_time_of_day(fajr, anchor_date, tz)

    if fajr_dt <= maghrib_dt:
        fajr_dt = parse_time_of_day(fajr, next_date, tz)

    if convention is Convention.ALTERNATIVE:
        if isha_dt < maghrib_dt:
            isha_dt = parse_time_of_day(isha, next_date, tz)
        night_start = isha_dt
    else:
        night_start = maghrib_dt

    night_span = fajr_dt - night_start
    night_duration_minutes = _round_half_up(night_span.total_seconds() / 60)
    last_third_minutes = _round_half_up(night_duration_minutes / 3)

    window = NightWindow(
        start=shift(fajr_dt, -datetime.timedelta(minutes=last_third_minutes)),
        end=fajr_dt,
        night_duration_minutes=night_duration_minutes,
        last_third_minutes=last_third_minutes,
        middle_of_night=shift(night_start, night_span / 2),
        night_start=night_start,
        convention=convention,
    )

    check = validate_window(window)
    window.valid = check.valid
    window.warning = check.warning
    if check.warning:
        logger.warning(
            "Night window %s -> %s flagged: %s",
            night_start.isoformat(), fajr_dt.isoformat(), check.warning,
        )
        warnings.warn(check.warning, InvalidWindowWarning, stacklevel=2)
    return window


def validate_window(window: NightWindow) -> WindowCheck:
    """Flag windows with a non-positive or implausibly long night, or a short last third."""
    if window.night_duration_minutes <= 0:
        return WindowCheck(False, "Invalid night duration")
    if window.night_duration_minutes > MAX_NIGHT_MINUTES:
        return WindowCheck(True, "Unusually long night duration (>18 hours)")
    if window.last_third_minutes < MIN_LAST_THIRD_MINUTES:
        return WindowCheck(True, "Short Qiyam window (<1 hour)")
    return WindowCheck(True)
