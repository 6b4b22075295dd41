"""Fetch daily prayer times and calculation methods from the Aladhan API."""

import datetime
import logging

import requests

from qiyam.errors import DataUnavailableError

logger = logging.getLogger(__name__)

ALADHAN_BASE = "https://api.aladhan.com/v1"
REQUEST_TIMEOUT = 10

# Reference times shown under the window, in display order
NIGHT_PRAYERS = ["Maghrib", "Isha", "Fajr"]

# Calculation methods the provider understands, by id
DEFAULT_METHOD = 2
METHODS = {
    0: "Shia Ithna-Ansari",
    1: "University of Islamic Sciences, Karachi",
    2: "Islamic Society of North America (ISNA)",
    3: "Muslim World League",
    4: "Umm Al-Qura University, Makkah",
    5: "Egyptian General Authority of Survey",
    7: "Institute of Geophysics, University of Tehran",
    8: "Gulf Region",
    9: "Kuwait",
    10: "Qatar",
    11: "Majlis Ugama Islam Singapura, Singapore",
    12: "Union Organization Islamic de France",
    13: "Diyanet İşleri Başkanlığı, Turkey",
    14: "Spiritual Administration of Muslims of Russia",
    15: "Moonsighting Committee Worldwide (Moonsighting.com)",
    16: "Dubai",
    17: "Jabatan Kemajuan Islam Malaysia (JAKIM)",
    18: "Tunisia",
    19: "Algeria",
    20: "Kementerian Agama Republik Indonesia",
    21: "Morocco",
    22: "Comunidade Islamica de Lisboa",
    23: "Ministry of Awqaf, Islamic Affairs and Holy Places, Jordan",
}


def method_name(method_id: int, methods: dict = None) -> str:
    """Display name of a method id, or the bare id when the table lacks it."""
    methods = METHODS if methods is None else methods
    return methods.get(method_id, str(method_id))


def _get_data(url: str, params: dict = None):
    """GET an Aladhan endpoint and return its 'data' member."""
    try:
        resp = requests.get(url, params=params, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        body = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise DataUnavailableError(f"Aladhan request failed: {exc}") from exc
    if not isinstance(body, dict) or body.get("code") != 200:
        status = body.get("status") if isinstance(body, dict) else None
        raise DataUnavailableError(f"Aladhan API error: {status}")
    return body.get("data")


def fetch_prayer_times(
    lat: float,
    lon: float,
    date: datetime.date = None,
    method: int = DEFAULT_METHOD,
) -> dict:
    """
    Fetch one calendar day's prayer times for the given coordinates.

    Returns a dict with:
        date: the datetime.date that was queried
        timings: {label: "HH:MM[ (TZ)]"} exactly as the provider sent them
        hijri: {day, month_name, month_ar, year}
        timezone: IANA zone name reported by the provider, or None
    Raises DataUnavailableError on network failure, a non-200 response or an
    unexpected payload shape.
    """
    if date is None:
        date = datetime.date.today()
    url = f"{ALADHAN_BASE}/timings/{date.strftime('%d-%m-%Y')}"
    params = {"latitude": lat, "longitude": lon, "method": method}
    logger.debug("Fetching prayer times for %s at (%s, %s), method %s", date, lat, lon, method)

    data = _get_data(url, params)
    if not isinstance(data, dict) or not isinstance(data.get("timings"), dict):
        raise DataUnavailableError("Invalid prayer times data")

    timings = {
        name: value
        for name, value in data["timings"].items()
        if isinstance(value, str)
    }

    hijri_data = (data.get("date") or {}).get("hijri") or {}
    month = hijri_data.get("month") or {}
    hijri = {
        "day": hijri_data.get("day", ""),
        "month_name": month.get("en", ""),
        "month_ar": month.get("ar", ""),
        "year": hijri_data.get("year", ""),
    }

    meta = data.get("meta") or {}
    return {
        "date": date,
        "timings": timings,
        "hijri": hijri,
        "timezone": meta.get("timezone"),
    }


def fetch_calculation_methods() -> dict:
    """
    Fetch the provider's calculation methods as {id: name}.

    The provider keys methods by short code; entries without a numeric id
    (such as the custom method) are skipped.
    """
    data = _get_data(f"{ALADHAN_BASE}/methods")
    if not isinstance(data, dict):
        raise DataUnavailableError("Invalid calculation methods data")
    methods = {}
    for entry in data.values():
        if not isinstance(entry, dict):
            continue
        method_id = entry.get("id")
        name = entry.get("name")
        if isinstance(method_id, int) and name:
            methods[method_id] = name
    return dict(sorted(methods.items()))
