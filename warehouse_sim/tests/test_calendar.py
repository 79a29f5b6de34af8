"""
Tests for the season calendar.
"""
import unittest
from datetime import date, datetime, timedelta, timezone

from warehouse_sim.core.calendar import (
    current_sales_window,
    open_collection_windows,
    next_collection_window,
    sales_season_windows,
    active_season_key,
    current_collection_label,
    validate_calendar,
    is_in_supported_range
)
from warehouse_sim.exceptions import CalendarError
from warehouse_sim.models import Hemisphere


class TestSalesWindows(unittest.TestCase):
    def test_first_day_north(self):
        """Test the first supported day in the north."""
        window = current_sales_window(date(2025, 9, 10), Hemisphere.NORTH)
        self.assertEqual(window.season, 'WINTER')
        self.assertEqual(window.label, 'FW-25/26')

    def test_south_gap_before_first_window(self):
        """Test the southern gap before the first season opens."""
        self.assertIsNone(current_sales_window(date(2025, 9, 12), Hemisphere.SOUTH))
        window = current_sales_window(date(2025, 9, 15), Hemisphere.SOUTH)
        self.assertEqual(window.label, 'SS-25/26')
        self.assertEqual(window.season, 'SUMMER')

    def test_outside_supported_range(self):
        """Test days before and after the supported range."""
        self.assertIsNone(current_sales_window(date(2025, 9, 9), Hemisphere.NORTH))
        self.assertIsNone(current_sales_window(date(2030, 9, 6), Hemisphere.NORTH))
        self.assertFalse(is_in_supported_range(date(2030, 9, 6)))
        self.assertTrue(is_in_supported_range(date(2030, 9, 5)))

    def test_window_boundaries_are_inclusive(self):
        """Test that start and end days both belong to their window."""
        self.assertEqual(current_sales_window(date(2026, 3, 10), 'NORTH').label, 'FW-25/26')
        self.assertEqual(current_sales_window(date(2026, 3, 11), 'NORTH').label, 'SS-26')
        self.assertEqual(current_sales_window(date(2030, 9, 5), 'NORTH').label, 'SS-30')

    def test_accepts_strings_and_aware_datetimes(self):
        """Test day key normalization of inputs."""
        self.assertEqual(current_sales_window('2026-03-11', 'south').label, 'FW-26')

        # 23:30 at UTC-5 is already the next day in UTC
        late_evening = datetime(2026, 3, 10, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        self.assertEqual(current_sales_window(late_evening, Hemisphere.NORTH).label, 'SS-26')

    def test_invalid_day_key_string(self):
        """Test that malformed strings are rejected."""
        with self.assertRaises(CalendarError):
            current_sales_window('2026-02-30', Hemisphere.NORTH)
        with self.assertRaises(CalendarError):
            current_sales_window('not a date', Hemisphere.NORTH)

    def test_active_season_key(self):
        """Test the season key shortcut."""
        self.assertEqual(active_season_key(date(2026, 7, 1), Hemisphere.NORTH), 'SUMMER')
        self.assertEqual(active_season_key(date(2026, 7, 1), Hemisphere.SOUTH), 'WINTER')
        self.assertIsNone(active_season_key(date(2031, 1, 1), Hemisphere.NORTH))


class TestSeasonWindows(unittest.TestCase):
    def test_current_and_next(self):
        """Test current and next window lookup."""
        windows = sales_season_windows(date(2026, 1, 15), Hemisphere.NORTH)
        self.assertEqual(windows.current.label, 'FW-25/26')
        self.assertEqual(windows.next.label, 'SS-26')

    def test_last_window_has_no_next(self):
        """Test the last window of the calendar."""
        windows = sales_season_windows(date(2030, 6, 1), Hemisphere.NORTH)
        self.assertEqual(windows.current.label, 'SS-30')
        self.assertIsNone(windows.next)

    def test_strict_mode_raises_in_gap(self):
        """Test that strict lookups fail outside every window."""
        with self.assertRaises(CalendarError):
            sales_season_windows(date(2025, 9, 12), Hemisphere.SOUTH)

    def test_lenient_mode_returns_upcoming(self):
        """Test that lenient lookups return the upcoming window."""
        windows = sales_season_windows(date(2025, 9, 12), Hemisphere.SOUTH, strict=False)
        self.assertIsNone(windows.current)
        self.assertEqual(windows.next.label, 'SS-25/26')


class TestCollectionWindows(unittest.TestCase):
    def test_overlapping_collections(self):
        """Test a day where two collections are open."""
        windows = open_collection_windows(date(2025, 10, 15), Hemisphere.NORTH)
        self.assertEqual([w.cycle_key for w in windows], ['FW2526', 'SS26'])
        self.assertEqual(current_collection_label(date(2025, 10, 15), Hemisphere.NORTH), 'SS-26')

    def test_single_collection(self):
        """Test a day where only one collection is open."""
        windows = open_collection_windows(date(2026, 3, 1), Hemisphere.NORTH)
        self.assertEqual([w.cycle_key for w in windows], ['SS26'])

    def test_no_collection(self):
        """Test a day after the last collection closes."""
        self.assertEqual(open_collection_windows(date(2030, 9, 1), Hemisphere.NORTH), [])
        self.assertIsNone(current_collection_label(date(2030, 9, 1), Hemisphere.NORTH))

    def test_next_collection_starts_strictly_after(self):
        """Test next collection lookup."""
        upcoming = next_collection_window(date(2025, 10, 15), Hemisphere.NORTH)
        self.assertEqual(upcoming.cycle_key, 'FW2627')
        self.assertEqual(upcoming.start, date(2026, 4, 1))

        # A window starting on the day itself is not "next"
        upcoming = next_collection_window(date(2026, 4, 1), Hemisphere.NORTH)
        self.assertEqual(upcoming.cycle_key, 'SS27')

        self.assertIsNone(next_collection_window(date(2029, 10, 1), Hemisphere.NORTH))

    def test_south_collections(self):
        """Test the southern collection table."""
        windows = open_collection_windows(date(2026, 5, 1), Hemisphere.SOUTH)
        self.assertEqual([w.cycle_key for w in windows], ['FW26', 'SS2627'])


class TestValidateCalendar(unittest.TestCase):
    def test_static_tables_are_valid(self):
        """Test that the shipped tables have no ordering or overlap problems."""
        problems = validate_calendar()
        self.assertEqual(set(problems), {
            'sales_north', 'sales_south', 'collection_north', 'collection_south'
        })
        for name, issues in problems.items():
            self.assertEqual(issues, [], name)


if __name__ == '__main__':
    unittest.main()
