"""Plain-text summary of the Qiyam window and the footer narrations."""

import random

from qiyam.night import NightWindow
from qiyam.times import format_duration, format_time

VIRTUES = [
    ("The best prayer after the obligatory prayers is the night prayer.", "Sahih Muslim"),
    (
        "Our Lord descends every night to the lowest heaven when the last third "
        "of the night remains...",
        "Bukhari & Muslim",
    ),
    (
        "You should pray at night, for it was the habit of the righteous people "
        "before you.",
        "At-Tirmidhi",
    ),
    (
        "The closest a servant is to his Lord is in the middle of the last part "
        "of the night.",
        "At-Tirmidhi",
    ),
]


def build_summary(window: NightWindow, time_format: str, address: str = None) -> str:
    """Text copied to the clipboard by the 'Copy summary' button."""
    header = f"Qiyam Window for {address}:" if address else "Qiyam Window:"
    lines = [
        header,
        f"• Starts: {format_time(window.start, time_format)}",
        f"• Ends (Fajr): {format_time(window.end, time_format)}",
        f"• Night Duration: {format_duration(window.night_duration_minutes)}",
    ]
    if window.middle_of_night is not None:
        lines.append(f"• Middle of Night: {format_time(window.middle_of_night, time_format)}")
    return "\n".join(lines)


def random_virtue(rng=random) -> tuple:
    """Return a (text, source) narration about the night prayer."""
    return rng.choice(VIRTUES)


def format_attribution(source: str) -> str:
    return f"~ {source}"


def build_diagnostics(lat: float, lng: float, method_id: int, window: NightWindow = None) -> str:
    """Reference footer: coordinates and method, plus the window's exact bounds when known."""
    lines = [f"Ref: {lat:.2f}, {lng:.2f} | M{method_id}"]
    if window is not None:
        lines.append(f"Start: {window.start.isoformat()}")
        lines.append(f"End: {window.end.isoformat()}")
        if window.warning:
            lines.append(f"Check: {window.warning}")
    return "\n".join(lines)
