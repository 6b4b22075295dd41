"""User settings: location, calculation method, convention and time format."""

import dataclasses
import json
import logging
import os
import tempfile
from typing import Optional

from qiyam.night import Convention
from qiyam.prayer_api import DEFAULT_METHOD
from qiyam.times import TIME_FORMAT_12H, TIME_FORMAT_24H, TIME_FORMATS

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".qiyam")
CONFIG_FILE = os.path.join(CONFIG_DIR, "settings.json")

DEFAULT_SETTINGS = {
    "location": {
        "lat": 40.7128,
        "lng": -74.0060,
        "label": "New York, United States",
        "timezone": "America/New_York",
    },
    "method_id": DEFAULT_METHOD,
    "convention": Convention.STANDARD.value,
    "time_format": TIME_FORMAT_12H,
}

# Field names written by earlier versions
_LEGACY_KEYS = {"methodId": "method_id", "timeFormat": "time_format"}


@dataclasses.dataclass(frozen=True)
class Location:
    lat: float
    lng: float
    label: Optional[str] = None
    timezone: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class Settings:
    location: Location
    method_id: int
    convention: Convention
    time_format: str

    @property
    def fetch_key(self) -> tuple:
        """Identity of the provider data these settings need."""
        return (self.location.lat, self.location.lng, self.method_id)

    def to_dict(self) -> dict:
        return {
            "location": dataclasses.asdict(self.location),
            "method_id": self.method_id,
            "convention": self.convention.value,
            "time_format": self.time_format,
        }


def default_settings() -> Settings:
    return _from_dict({})


def _from_dict(data: dict) -> Settings:
    defaults = DEFAULT_SETTINGS
    merged = dict(defaults)
    for key, value in data.items():
        merged[_LEGACY_KEYS.get(key, key)] = value

    loc_data = dict(defaults["location"])
    if isinstance(merged.get("location"), dict):
        loc_data.update(merged["location"])
    try:
        location = Location(
            lat=float(loc_data["lat"]),
            lng=float(loc_data["lng"]),
            label=loc_data.get("label"),
            timezone=loc_data.get("timezone"),
        )
    except (TypeError, ValueError):
        logger.warning("Ignoring unusable stored location %r", merged.get("location"))
        location = Location(**defaults["location"])

    try:
        method_id = int(merged["method_id"])
    except (TypeError, ValueError):
        method_id = defaults["method_id"]

    try:
        convention = Convention(merged["convention"])
    except ValueError:
        convention = Convention(defaults["convention"])

    time_format = merged["time_format"]
    if time_format not in TIME_FORMATS:
        time_format = defaults["time_format"]

    return Settings(location, method_id, convention, time_format)


def load_settings(path: str = None) -> Settings:
    """
    Load settings, merging whatever was stored over the defaults.

    A missing file gives the defaults; a corrupt one is logged and ignored, so
    loading never fails.
    """
    path = path or CONFIG_FILE
    if not os.path.isfile(path):
        return default_settings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Could not read settings from %s: %s", path, exc)
        return default_settings()
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: not a JSON object", path)
        return default_settings()
    return _from_dict(data)


def save_settings(settings: Settings, path: str = None) -> None:
    """Write settings atomically: readers see the old file or the new one, never half."""
    path = path or CONFIG_FILE
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".settings-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def update_settings(settings: Settings, path: str = None, **changes) -> Settings:
    """Return settings with `changes` applied, saved to disk."""
    if "convention" in changes:
        changes["convention"] = Convention(changes["convention"])
    if "time_format" in changes and changes["time_format"] not in TIME_FORMATS:
        raise ValueError(f"Unknown time format: {changes['time_format']}")
    updated = dataclasses.replace(settings, **changes)
    save_settings(updated, path)
    return updated


def toggle_time_format(settings: Settings, path: str = None) -> Settings:
    new_format = TIME_FORMAT_24H if settings.time_format == TIME_FORMAT_12H else TIME_FORMAT_12H
    return update_settings(settings, path, time_format=new_format)
