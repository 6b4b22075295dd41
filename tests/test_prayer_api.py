"""Tests for the prayer_api module."""

import copy
import datetime
import unittest
from unittest.mock import MagicMock, patch

import requests

from qiyam.errors import DataUnavailableError
from qiyam.prayer_api import (
    DEFAULT_METHOD,
    METHODS,
    fetch_calculation_methods,
    fetch_prayer_times,
    method_name,
)

MOCK_RESPONSE = {
    "code": 200,
    "status": "OK",
    "data": {
        "timings": {
            "Fajr": "04:30",
            "Sunrise": "05:55",
            "Dhuhr": "12:00",
            "Asr": "15:30",
            "Sunset": "18:13",
            "Maghrib": "18:15",
            "Isha": "19:30",
            "Midnight": "00:00",
            "Imsak": "04:20",
        },
        "date": {
            "readable": "01 Mar 2025",
            "gregorian": {"date": "01-03-2025"},
            "hijri": {
                "day": "1",
                "month": {"en": "Ramadan", "ar": "رَمَضان"},
                "year": "1446",
            },
        },
        "meta": {"latitude": -6.2, "longitude": 106.8, "timezone": "Asia/Jakarta"},
    },
}

# Shape of GET /v1/methods, keyed by short code
METHODS_PAYLOAD = {
    "JAFARI": {"id": 0, "name": "Shia Ithna-Ansari"},
    "KARACHI": {"id": 1, "name": "University of Islamic Sciences, Karachi"},
    "ISNA": {"id": 2, "name": "Islamic Society of North America (ISNA)"},
    "MWL": {"id": 3, "name": "Muslim World League"},
    "MAKKAH": {"id": 4, "name": "Umm Al-Qura University, Makkah"},
    "EGYPT": {"id": 5, "name": "Egyptian General Authority of Survey"},
    "TEHRAN": {"id": 7, "name": "Institute of Geophysics, University of Tehran"},
    "GULF": {"id": 8, "name": "Gulf Region"},
    "KUWAIT": {"id": 9, "name": "Kuwait"},
    "QATAR": {"id": 10, "name": "Qatar"},
    "SINGAPORE": {"id": 11, "name": "Majlis Ugama Islam Singapura, Singapore"},
    "FRANCE": {"id": 12, "name": "Union Organization Islamic de France"},
    "TURKEY": {"id": 13, "name": "Diyanet İşleri Başkanlığı, Turkey"},
    "RUSSIA": {"id": 14, "name": "Spiritual Administration of Muslims of Russia"},
    "MOONSIGHTING": {"id": 15, "name": "Moonsighting Committee Worldwide (Moonsighting.com)"},
    "DUBAI": {"id": 16, "name": "Dubai"},
    "JAKIM": {"id": 17, "name": "Jabatan Kemajuan Islam Malaysia (JAKIM)"},
    "TUNISIA": {"id": 18, "name": "Tunisia"},
    "ALGERIA": {"id": 19, "name": "Algeria"},
    "KEMENAG": {"id": 20, "name": "Kementerian Agama Republik Indonesia"},
    "MOROCCO": {"id": 21, "name": "Morocco"},
    "PORTUGAL": {"id": 22, "name": "Comunidade Islamica de Lisboa"},
    "JORDAN": {"id": 23, "name": "Ministry of Awqaf, Islamic Affairs and Holy Places, Jordan"},
    "CUSTOM": {"id": 99},
}


def _response(body):
    mock_resp = MagicMock()
    mock_resp.json.return_value = body
    mock_resp.raise_for_status = MagicMock()
    return mock_resp


class TestFetchPrayerTimes(unittest.TestCase):
    @patch("qiyam.prayer_api.requests.get")
    def test_returns_timings_and_hijri(self, mock_get):
        mock_get.return_value = _response(MOCK_RESPONSE)

        result = fetch_prayer_times(-6.2, 106.8, datetime.date(2025, 3, 1))

        self.assertEqual(result["timings"]["Fajr"], "04:30")
        self.assertEqual(result["timings"]["Maghrib"], "18:15")
        self.assertEqual(result["timings"]["Sunset"], "18:13")
        self.assertEqual(result["hijri"]["month_name"], "Ramadan")
        self.assertEqual(result["hijri"]["year"], "1446")
        self.assertEqual(result["timezone"], "Asia/Jakarta")
        self.assertEqual(result["date"], datetime.date(2025, 3, 1))

    @patch("qiyam.prayer_api.requests.get")
    def test_queries_date_and_method(self, mock_get):
        mock_get.return_value = _response(MOCK_RESPONSE)

        fetch_prayer_times(-6.2, 106.8, datetime.date(2025, 3, 1), method=4)

        url = mock_get.call_args[0][0]
        params = mock_get.call_args[1]["params"]
        self.assertTrue(url.endswith("/timings/01-03-2025"))
        self.assertEqual(params, {"latitude": -6.2, "longitude": 106.8, "method": 4})
        self.assertIn("timeout", mock_get.call_args[1])

    @patch("qiyam.prayer_api.requests.get")
    def test_keeps_provider_annotations(self, mock_get):
        response = copy.deepcopy(MOCK_RESPONSE)
        response["data"]["timings"]["Fajr"] = "04:30 (PKT)"
        mock_get.return_value = _response(response)

        result = fetch_prayer_times(-6.2, 106.8)
        self.assertEqual(result["timings"]["Fajr"], "04:30 (PKT)")

    @patch("qiyam.prayer_api.requests.get")
    def test_raises_on_api_error(self, mock_get):
        mock_get.return_value = _response({"code": 400, "status": "Bad Request"})

        with self.assertRaises(DataUnavailableError):
            fetch_prayer_times(-6.2, 106.8)

    @patch("qiyam.prayer_api.requests.get")
    def test_raises_on_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("Network error")

        with self.assertRaises(DataUnavailableError):
            fetch_prayer_times(-6.2, 106.8)

    @patch("qiyam.prayer_api.requests.get")
    def test_raises_on_http_error(self, mock_get):
        mock_resp = _response(MOCK_RESPONSE)
        mock_resp.raise_for_status.side_effect = requests.HTTPError("500")
        mock_get.return_value = mock_resp

        with self.assertRaises(DataUnavailableError):
            fetch_prayer_times(-6.2, 106.8)

    @patch("qiyam.prayer_api.requests.get")
    def test_raises_on_schema_mismatch(self, mock_get):
        mock_get.return_value = _response({"code": 200, "status": "OK", "data": {"timings": "nope"}})

        with self.assertRaises(DataUnavailableError):
            fetch_prayer_times(-6.2, 106.8)

    @patch("qiyam.prayer_api.requests.get")
    def test_raises_on_invalid_json(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.raise_for_status = MagicMock()
        mock_resp.json.side_effect = ValueError("not json")
        mock_get.return_value = mock_resp

        with self.assertRaises(DataUnavailableError):
            fetch_prayer_times(-6.2, 106.8)


class TestFetchCalculationMethods(unittest.TestCase):
    @patch("qiyam.prayer_api.requests.get")
    def test_maps_ids_to_names(self, mock_get):
        mock_get.return_value = _response({
            "code": 200,
            "status": "OK",
            "data": {
                "MWL": {"id": 3, "name": "Muslim World League", "params": {"Fajr": 18, "Isha": 17}},
                "ISNA": {"id": 2, "name": "Islamic Society of North America (ISNA)", "params": {}},
                "CUSTOM": {"id": 99},
            },
        })

        methods = fetch_calculation_methods()
        self.assertEqual(methods, {2: "Islamic Society of North America (ISNA)", 3: "Muslim World League"})

    @patch("qiyam.prayer_api.requests.get")
    def test_raises_on_failure(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")
        with self.assertRaises(DataUnavailableError):
            fetch_calculation_methods()

    @patch("qiyam.prayer_api.requests.get")
    def test_builtin_table_matches_provider_ids(self, mock_get):
        mock_get.return_value = _response({"code": 200, "status": "OK", "data": METHODS_PAYLOAD})

        methods = fetch_calculation_methods()
        self.assertEqual(set(methods), set(METHODS))
        for method_id, name in methods.items():
            self.assertEqual(METHODS[method_id], name)
        self.assertEqual(METHODS[DEFAULT_METHOD], "Islamic Society of North America (ISNA)")
        self.assertEqual(METHODS[1], "University of Islamic Sciences, Karachi")
        self.assertEqual(METHODS[3], "Muslim World League")
        self.assertEqual(METHODS[4], "Umm Al-Qura University, Makkah")
        self.assertEqual(METHODS[5], "Egyptian General Authority of Survey")


class TestMethodName(unittest.TestCase):
    def test_default_method_is_isna(self):
        self.assertEqual(method_name(DEFAULT_METHOD), "Islamic Society of North America (ISNA)")

    def test_follows_the_given_table(self):
        fetched = {2: "ISNA (provider)", 3: "MWL (provider)"}
        self.assertEqual(method_name(2, fetched), "ISNA (provider)")

    def test_unknown_id_shows_the_id(self):
        self.assertEqual(method_name(6), "6")
        self.assertEqual(method_name(3, {}), "3")


if __name__ == "__main__":
    unittest.main()
