"""Derive what the widget shows from a night window and the current time."""

import dataclasses
import datetime
import enum
from typing import Optional

from qiyam.night import NightWindow


class WindowState(enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


@dataclasses.dataclass(frozen=True)
class Countdown:
    hours: int
    minutes: int
    seconds: int

    @classmethod
    def from_timedelta(cls, delta: datetime.timedelta) -> "Countdown":
        total = max(int(delta.total_seconds()), 0)
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        return cls(hours, minutes, seconds)

    def __str__(self) -> str:
        return f"{self.hours:02d}h : {self.minutes:02d}m : {self.seconds:02d}s"


@dataclasses.dataclass(frozen=True)
class WindowStatus:
    state: WindowState
    countdown: Optional[Countdown] = None


def project_state(window: NightWindow, now: datetime.datetime) -> WindowStatus:
    """
    Classify now against the Qiyam window (last-third start through Fajr).

    Recomputed from scratch on every tick, so a missed tick costs nothing.
    """
    if now >= window.end:
        return WindowStatus(WindowState.ENDED)
    if now >= window.start:
        return WindowStatus(WindowState.ACTIVE)
    return WindowStatus(WindowState.PENDING, Countdown.from_timedelta(window.start - now))


def progress_ratio(window: NightWindow, now: datetime.datetime) -> float:
    """
    Fraction of the whole night elapsed, from the convention's night start to Fajr.

    This uses the full night, not the last third the state machine works on.
    """
    total = (window.end - window.night_start).total_seconds()
    if total <= 0:
        return 1.0 if now >= window.end else 0.0
    elapsed = (now - window.night_start).total_seconds()
    return min(max(elapsed / total, 0.0), 1.0)
