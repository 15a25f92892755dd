# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest
from datetime import date, datetime, timezone

from duulair.localtime import (
    DayWindow,
    fixed_offset,
    from_storage_text,
    local_date_of,
    parse_iso_date,
    previous_local_day,
    to_storage_text,
    years_between,
)

BANGKOK = fixed_offset(7)


class TestLocalTime(unittest.TestCase):
    def test_previous_local_day_uses_local_calendar(self) -> None:
        # 16:59 UTC is still 23:59 local; 17:00 UTC is already tomorrow.
        self.assertEqual(
            previous_local_day(datetime(2025, 1, 15, 16, 59, tzinfo=timezone.utc), BANGKOK), date(2025, 1, 14)
        )
        self.assertEqual(
            previous_local_day(datetime(2025, 1, 15, 17, 0, tzinfo=timezone.utc), BANGKOK), date(2025, 1, 15)
        )

    def test_naive_now_is_utc(self) -> None:
        self.assertEqual(previous_local_day(datetime(2025, 1, 15, 17, 0), BANGKOK), date(2025, 1, 15))

    def test_day_window(self) -> None:
        window = DayWindow.for_day(date(2025, 1, 14), BANGKOK)
        self.assertEqual(to_storage_text(window.start), "2025-01-13T17:00:00.000000Z")
        self.assertEqual(to_storage_text(window.end), "2025-01-14T16:59:59.000000Z")

        span = DayWindow.for_range(date(2025, 1, 10), date(2025, 1, 12), BANGKOK)
        self.assertEqual(to_storage_text(span.start), "2025-01-09T17:00:00.000000Z")
        self.assertEqual(to_storage_text(span.end), "2025-01-12T16:59:59.000000Z")

    def test_local_date_of(self) -> None:
        self.assertEqual(local_date_of(datetime(2025, 1, 14, 18, 0, tzinfo=timezone.utc), BANGKOK), date(2025, 1, 15))

    def test_parse_iso_date(self) -> None:
        self.assertEqual(parse_iso_date("2025-01-05"), date(2025, 1, 5))
        self.assertIsNone(parse_iso_date(None))
        self.assertIsNone(parse_iso_date(""))
        self.assertIsNone(parse_iso_date("2025-1-5"))
        self.assertIsNone(parse_iso_date("2025-02-30"))
        self.assertIsNone(parse_iso_date("2025-01-05T00:00"))
        self.assertIsNone(parse_iso_date("yesterday"))

    def test_storage_text_round_trip_and_ordering(self) -> None:
        ts = datetime(2025, 1, 14, 23, 59, 59, tzinfo=BANGKOK)
        self.assertEqual(from_storage_text(to_storage_text(ts)), ts)
        self.assertLess(
            to_storage_text(datetime(2025, 1, 14, 9, 0, tzinfo=timezone.utc)),
            to_storage_text(datetime(2025, 1, 14, 10, 0, tzinfo=timezone.utc)),
        )
        with self.assertRaises(ValueError):
            to_storage_text(datetime(2025, 1, 14, 9, 0))

    def test_years_between(self) -> None:
        self.assertEqual(years_between(date(1950, 6, 15), date(2025, 6, 14)), 74)
        self.assertEqual(years_between(date(1950, 6, 15), date(2025, 6, 15)), 75)


if __name__ == "__main__":
    unittest.main()
