"""Tests for the night window calculator."""

import datetime
import unittest
import warnings

import pytz

from qiyam.errors import InvalidWindowWarning, MalformedTimeError
from qiyam.night import Convention, compute_window, validate_window

DAY = datetime.date(2025, 3, 1)
NEXT = datetime.date(2025, 3, 2)


def at(date, hour, minute=0):
    return datetime.datetime.combine(date, datetime.time(hour, minute))


class TestScenarios(unittest.TestCase):
    def test_normal_night(self):
        w = compute_window("18:00", "20:00", "05:00", Convention.STANDARD, DAY)
        self.assertEqual(w.night_duration_minutes, 660)
        self.assertEqual(w.last_third_minutes, 220)
        self.assertEqual(w.start, at(NEXT, 1, 20))
        self.assertEqual(w.end, at(NEXT, 5, 0))
        self.assertEqual(w.middle_of_night, at(DAY, 23, 30))
        self.assertEqual(w.night_start, at(DAY, 18, 0))
        self.assertTrue(w.valid)
        self.assertIsNone(w.warning)

    def test_cross_midnight(self):
        w = compute_window("19:00", "21:00", "04:30", "standard", DAY)
        self.assertEqual(w.night_duration_minutes, 570)
        self.assertEqual(w.last_third_minutes, 190)
        self.assertEqual(w.start, at(NEXT, 1, 20))

    def test_alternative_convention_starts_at_isha(self):
        w = compute_window("18:00", "21:00", "05:00", Convention.ALTERNATIVE, DAY)
        self.assertEqual(w.night_start, at(DAY, 21, 0))
        self.assertEqual(w.night_duration_minutes, 480)
        self.assertEqual(w.last_third_minutes, 160)
        self.assertEqual(w.start, at(NEXT, 2, 20))
        self.assertEqual(w.middle_of_night, at(NEXT, 1, 0))

    def test_provider_annotations_are_ignored(self):
        w = compute_window("18:00 (EET)", "20:00 (EET)", "05:00 (EET)", Convention.STANDARD, DAY)
        self.assertEqual(w.night_duration_minutes, 660)

    def test_defaults_to_today(self):
        w = compute_window("18:00", "20:00", "05:00")
        self.assertEqual(w.night_start.date(), datetime.date.today())


class TestProperties(unittest.TestCase):
    INPUTS = [
        ("18:00", "19:30", "05:00"),
        ("19:47", "21:15", "04:02"),
        ("17:05", "18:31", "06:44"),
        ("20:58", "22:40", "03:11"),
        ("21:30", "00:15", "02:30"),
        ("16:20", "17:50", "07:01"),
    ]

    def _windows(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", InvalidWindowWarning)
            return [
                compute_window(maghrib, isha, fajr, convention, DAY)
                for maghrib, isha, fajr in self.INPUTS
                for convention in Convention
            ]

    def test_end_is_after_night_start(self):
        for w in self._windows():
            self.assertGreater(w.end, w.night_start)
            self.assertLessEqual(w.start, w.end)
            self.assertLess(w.night_start, w.middle_of_night)
            self.assertLess(w.middle_of_night, w.end)

    def test_last_third_is_a_third(self):
        for w in self._windows():
            self.assertLessEqual(abs(w.last_third_minutes - w.night_duration_minutes / 3), 1)
            self.assertEqual(w.end - w.start, datetime.timedelta(minutes=w.last_third_minutes))

    def test_convention_never_changes_end(self):
        for maghrib, isha, fajr in self.INPUTS:
            standard = compute_window(maghrib, isha, fajr, Convention.STANDARD, DAY)
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", InvalidWindowWarning)
                alternative = compute_window(maghrib, isha, fajr, Convention.ALTERNATIVE, DAY)
            self.assertEqual(standard.end, alternative.end)
            self.assertGreaterEqual(alternative.start, standard.start)

    def test_rounds_to_nearest_minute(self):
        # 661 / 3 = 220.33 -> 220, 662 / 3 = 220.67 -> 221
        self.assertEqual(compute_window("18:00", "20:00", "05:01", "standard", DAY).last_third_minutes, 220)
        self.assertEqual(compute_window("18:00", "20:00", "05:02", "standard", DAY).last_third_minutes, 221)


class TestEdgeCases(unittest.TestCase):
    def test_isha_after_midnight_moves_to_next_day(self):
        with self.assertWarns(InvalidWindowWarning):
            w = compute_window("21:30", "00:15", "02:30", Convention.ALTERNATIVE, DAY)
        self.assertEqual(w.night_start, at(NEXT, 0, 15))
        self.assertEqual(w.night_duration_minutes, 135)
        self.assertEqual(w.last_third_minutes, 45)
        self.assertTrue(w.valid)
        self.assertEqual(w.warning, "Short Qiyam window (<1 hour)")

    def test_isha_after_fajr_is_invalid_but_returned(self):
        with self.assertWarns(InvalidWindowWarning):
            w = compute_window("18:00", "06:00", "05:00", Convention.ALTERNATIVE, DAY)
        self.assertLessEqual(w.night_duration_minutes, 0)
        self.assertFalse(w.valid)
        self.assertEqual(w.warning, "Invalid night duration")

    def test_very_long_night_is_flagged(self):
        with self.assertWarns(InvalidWindowWarning):
            w = compute_window("16:00", "17:30", "11:00", Convention.STANDARD, DAY)
        self.assertEqual(w.night_duration_minutes, 19 * 60)
        self.assertTrue(w.valid)
        self.assertIn(">18 hours", w.warning)

    def test_fajr_equal_to_maghrib_rolls_over(self):
        with self.assertWarns(InvalidWindowWarning):
            w = compute_window("18:00", "19:00", "18:00", Convention.STANDARD, DAY)
        self.assertEqual(w.end, at(NEXT, 18, 0))

    def test_malformed_input_raises(self):
        with self.assertRaises(MalformedTimeError):
            compute_window("18:00", "20:00", "25:00", Convention.STANDARD, DAY)

    def test_unknown_convention_raises(self):
        with self.assertRaises(ValueError):
            compute_window("18:00", "20:00", "05:00", "hanafi", DAY)

    def test_dst_night_uses_real_elapsed_time(self):
        tz = pytz.timezone("America/New_York")
        # Clocks go forward at 02:00 on 2025-03-09, so this night is 10 real hours
        w = compute_window("18:00", "19:30", "05:00", Convention.STANDARD, datetime.date(2025, 3, 8), tz)
        self.assertEqual(w.night_duration_minutes, 600)
        self.assertEqual(w.last_third_minutes, 200)
        self.assertEqual((w.start.hour, w.start.minute), (0, 40))
        self.assertEqual((w.end.hour, w.end.minute), (5, 0))


class TestValidateWindow(unittest.TestCase):
    def test_normal_window_has_no_warning(self):
        w = compute_window("18:00", "20:00", "05:00", Convention.STANDARD, DAY)
        check = validate_window(w)
        self.assertTrue(check.valid)
        self.assertIsNone(check.warning)


if __name__ == "__main__":
    unittest.main()
