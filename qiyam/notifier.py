"""Desktop notifications around the Qiyam window."""

import datetime
import logging
import threading

from plyer import notification as plyer_notification

from qiyam.night import NightWindow

logger = logging.getLogger(__name__)

APP_NAME = "Qiyam"
APP_ICON = ""  # Path to icon file; empty = default

REMIND_BEFORE_START = 10 * 60
REMIND_BEFORE_FAJR = 10 * 60


def _send_plyer(title: str, message: str, timeout: int = 10) -> None:
    """Send a desktop notification via plyer (cross-platform)."""
    kwargs = dict(
        app_name=APP_NAME,
        title=title,
        message=message,
        timeout=timeout,
    )
    if APP_ICON:
        kwargs["app_icon"] = APP_ICON
    try:
        plyer_notification.notify(**kwargs)
    except NotImplementedError:
        logger.warning("No desktop notification backend on this platform")
    except Exception:
        logger.exception("Desktop notification failed")


def notify(title: str, message: str, timeout: int = 15, callback=None) -> None:
    """Send a desktop notification and optionally mirror it via callback(title, message)."""
    _send_plyer(title, message, timeout=timeout)
    if callback:
        callback(title, message)


def _messages(window: NightWindow) -> list:
    start_minutes = REMIND_BEFORE_START // 60
    fajr_minutes = REMIND_BEFORE_FAJR // 60
    return [
        (
            window.start - datetime.timedelta(seconds=REMIND_BEFORE_START),
            f"🌙 Qiyam in {start_minutes} minutes",
            f"The last third of the night begins in {start_minutes} minutes.",
        ),
        (
            window.start,
            "🌙 The last third has begun",
            "The best time for the night prayer has started.",
        ),
        (
            window.end - datetime.timedelta(seconds=REMIND_BEFORE_FAJR),
            f"🌅 Fajr in {fajr_minutes} minutes",
            f"The Qiyam window closes in {fajr_minutes} minutes.",
        ),
    ]


def schedule_window_reminders(window: NightWindow, now: datetime.datetime, gui_callback=None) -> list:
    """
    Schedule notifications before and at the start of the window, and before Fajr.

    Reminders whose moment has already passed are skipped. Returns the Timer
    objects so they can be cancelled when the window is recomputed.
    """
    timers = []
    if not window.valid:
        return timers
    for when, title, message in _messages(window):
        delay = (when - now).total_seconds()
        if delay <= 0:
            continue
        t = threading.Timer(delay, notify, args=(title, message, 15, gui_callback))
        t.daemon = True
        t.start()
        timers.append(t)
    return timers
